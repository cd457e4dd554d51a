"""Section validators: minimum shapes and quality scoring."""
