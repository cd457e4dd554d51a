"""Per-section quality metrics for one generation run."""

import logging
import threading
import time
from typing import Dict, List, Optional

from linguaspark.models.lesson import QualityReport, SectionName, SectionQuality

from .sections.base import SectionOutcome

logger = logging.getLogger(__name__)


class QualityMetricsTracker:
    """Collects validation scores, attempts and timings as sections finish.

    One tracker per run; ``record`` is safe to call from worker threads.
    """

    def __init__(self):
        self._metrics: Dict[SectionName, SectionQuality] = {}
        self._lock = threading.Lock()
        self._start_time = time.time()

    def record(self, outcome: SectionOutcome) -> SectionQuality:
        metrics = SectionQuality(
            section=outcome.name,
            score=outcome.validation.score,
            attempts=outcome.attempts,
            generation_time_ms=round(outcome.generation_time_ms, 2),
            issue_count=len(outcome.validation.issues),
            warning_count=len(outcome.validation.warnings),
            origin=outcome.origin,
            degraded=outcome.degraded is not None,
        )
        with self._lock:
            self._metrics[outcome.name] = metrics
        logger.info(
            f"Quality metrics for {outcome.name.value}: score={metrics.score}, origin={metrics.origin.value}",
            extra={"section": outcome.name.value, **metrics.model_dump(mode="json", exclude={"section"})},
        )
        return metrics

    def get(self, section: SectionName) -> Optional[SectionQuality]:
        return self._metrics.get(section)

    def all_metrics(self) -> List[SectionQuality]:
        with self._lock:
            return list(self._metrics.values())

    def overall_score(self) -> int:
        sections = self.all_metrics()
        if not sections:
            return 0
        return round(sum(s.score for s in sections) / len(sections))

    def report(self) -> QualityReport:
        sections = self.all_metrics()
        return QualityReport(
            sections=sections,
            overall_score=self.overall_score(),
            degraded_count=sum(1 for s in sections if s.degraded),
            total_generation_time_ms=round((time.time() - self._start_time) * 1000, 2),
        )

    def log_summary(self) -> None:
        report = self.report()
        logger.info("=" * 60)
        logger.info("LESSON QUALITY REPORT")
        logger.info("=" * 60)
        logger.info(f"Overall quality score: {report.overall_score}/100")
        logger.info(f"Total generation time: {report.total_generation_time_ms / 1000:.2f}s")
        logger.info(f"Degraded sections: {report.degraded_count}")
        for s in report.sections:
            status = "degraded" if s.degraded else "ok"
            logger.info(
                f"  {s.section.value}: {s.score}/100 ({status}, origin={s.origin.value}, "
                f"{s.issue_count} issues, {s.warning_count} warnings)"
            )
        logger.info("=" * 60)
