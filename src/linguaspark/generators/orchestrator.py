"""Lesson generation orchestrator.

Runs one generation through ``Idle -> BuildingContext -> GeneratingSection
(1..n) -> Assembling -> Done``. Only a ContextBuildFailure ends a run early;
every section resolves to live, repaired, extracted or template content.

Sections run sequentially by default so later sections can read earlier
ones (the reading passage uses the vocabulary section's words). Parallel
mode builds the shared context first, then runs every section in a thread
pool with its own timeout.
"""

import logging
import queue
import random
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from linguaspark.config import GeneratorConfig, ModelEndpoint
from linguaspark.models.events import CompleteEvent, ErrorEvent, ProgressEvent
from linguaspark.models.lesson import (
    ErrorKind,
    GeneratedLesson,
    GenerationState,
    LessonRequest,
    SectionName,
    SharedContext,
)
from linguaspark.resilience.classifier import user_message_for
from linguaspark.resilience.errors import ContextBuildFailure
from linguaspark.utils.llm_client import LLMClient

from .context_builder import SharedContextBuilder
from .progress import ProgressCallback, ProgressDispatcher, ProgressTracker, get_active_sections
from .quality import QualityMetricsTracker
from .sections import SECTION_GENERATORS, BaseSectionGenerator, SectionOutcome

logger = logging.getLogger(__name__)

ClientFactory = Callable[[GeneratorConfig, Optional[ModelEndpoint]], LLMClient]

DEGRADED_NOTICE = (
    "Some parts of this lesson use standard practice material because they could not be "
    "generated from your text: {sections}."
)


class LessonGenerator:
    """Generates complete lessons from source text.

    Args:
        config: Generator configuration (default: GeneratorConfig())
        llm_client: Client for every call that has no per-section endpoint
        client_factory: Builds clients from (config, endpoint); defaults to
            ``LLMClient.from_config``
        rng: Random source for answer-bank shuffling
    """

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        llm_client: Optional[LLMClient] = None,
        client_factory: Optional[ClientFactory] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or GeneratorConfig()
        self.llm_client = llm_client
        self.client_factory = client_factory or LLMClient.from_config
        self.rng = rng or random.Random()
        self.state = GenerationState.IDLE
        self._section_clients: Dict[SectionName, LLMClient] = {}

    # ------------------------------------------------------------------
    # Clients and generators
    # ------------------------------------------------------------------

    def default_client(self) -> LLMClient:
        if self.llm_client is None:
            self.llm_client = self.client_factory(self.config, None)
        return self.llm_client

    def client_for(self, section: SectionName) -> LLMClient:
        endpoint = self.config.endpoint_for(section)
        if endpoint is None:
            return self.default_client()
        if section not in self._section_clients:
            logger.info(f"Using dedicated endpoint for {section.value}: model={endpoint.model or self.config.model}")
            self._section_clients[section] = self.client_factory(self.config, endpoint)
        return self._section_clients[section]

    def build_generator(self, section: SectionName) -> BaseSectionGenerator:
        generator_cls = SECTION_GENERATORS[section]
        if section == SectionName.DIALOGUE:
            return generator_cls(self.client_for(section), self.config, rng=self.rng)
        return generator_cls(self.client_for(section), self.config)

    def _set_state(self, state: GenerationState) -> None:
        logger.debug(f"Generation state: {self.state.value} -> {state.value}")
        self.state = state

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(
        self,
        params: Union[LessonRequest, Mapping[str, Any]],
        on_progress: Optional[ProgressCallback] = None,
    ) -> GeneratedLesson:
        """Generate a lesson.

        Args:
            params: LessonRequest or a mapping accepted by it
            on_progress: Optional callback receiving ProgressUpdate objects on a
                background thread. Its failures are logged and ignored.

        Returns:
            GeneratedLesson with every active section, possibly degraded

        Raises:
            pydantic.ValidationError: If params are invalid
            ContextBuildFailure: If the source text is unusable
        """
        request = params if isinstance(params, LessonRequest) else LessonRequest.model_validate(params)
        self._set_state(GenerationState.IDLE)
        tracker = ProgressTracker(request.lesson_type)
        quality = QualityMetricsTracker()
        dispatcher = ProgressDispatcher(on_progress, self.config.callback_flush_timeout_seconds)
        start_time = time.time()

        try:
            self._set_state(GenerationState.BUILDING_CONTEXT)
            dispatcher.publish(tracker.context_started())
            try:
                builder = SharedContextBuilder(self.default_client())
                context = builder.build(request)
            except ContextBuildFailure as e:
                self._set_state(GenerationState.FAILED)
                logger.error(f"Context build failed: {e}", extra={"word_count": e.word_count})
                raise

            sections = get_active_sections(request.lesson_type)
            logger.info(
                f"Generating {len(sections)} sections ({self.config.scheduling}): "
                f"{', '.join(s.value for s in sections)}"
            )
            self._set_state(GenerationState.GENERATING_SECTION)
            if self.config.scheduling == "parallel":
                outcomes = self._generate_parallel(context, sections, tracker, quality, dispatcher)
            else:
                outcomes = self._generate_sequential(context, sections, tracker, quality, dispatcher)

            self._set_state(GenerationState.ASSEMBLING)
            dispatcher.publish(tracker.finalizing())
            lesson = self.assemble(request, context, sections, outcomes, quality)
            self._set_state(GenerationState.DONE)

            quality.log_summary()
            logger.info(
                f"Lesson generated in {time.time() - start_time:.1f}s",
                extra={
                    "lesson_type": request.lesson_type.value,
                    "level": request.student_level.value,
                    "degraded_sections": [d.section.value for d in lesson.degraded_sections],
                },
            )
            return lesson
        finally:
            dispatcher.close()

    def _run_section(
        self,
        generator: BaseSectionGenerator,
        context: SharedContext,
        prior: Mapping[SectionName, Any],
    ) -> SectionOutcome:
        try:
            return generator.generate(context, prior)
        except Exception as e:
            logger.error(f"Section {generator.name.value} raised unexpectedly: {e}", exc_info=True)
            return generator.fallback_outcome(context, prior, ErrorKind.UPSTREAM_FAILURE, str(e)[:200], attempts=1)

    def _finish_section(
        self,
        outcome: SectionOutcome,
        tracker: ProgressTracker,
        quality: QualityMetricsTracker,
        dispatcher: ProgressDispatcher,
    ) -> None:
        quality.record(outcome)
        dispatcher.publish(tracker.section_completed(outcome.name))

    def _generate_sequential(
        self,
        context: SharedContext,
        sections: List[SectionName],
        tracker: ProgressTracker,
        quality: QualityMetricsTracker,
        dispatcher: ProgressDispatcher,
    ) -> Dict[SectionName, SectionOutcome]:
        outcomes: Dict[SectionName, SectionOutcome] = {}
        prior: Dict[SectionName, Any] = {}
        for section in sections:
            dispatcher.publish(tracker.section_started(section))
            outcome = self._run_section(self.build_generator(section), context, prior)
            outcomes[section] = outcome
            prior[section] = outcome.payload
            self._finish_section(outcome, tracker, quality, dispatcher)
        return outcomes

    def _generate_parallel(
        self,
        context: SharedContext,
        sections: List[SectionName],
        tracker: ProgressTracker,
        quality: QualityMetricsTracker,
        dispatcher: ProgressDispatcher,
    ) -> Dict[SectionName, SectionOutcome]:
        """Run every section in a pool; each result slot is written once.

        A section's timeout counts from its submission, so time spent queued
        behind busy workers is included.
        """
        outcomes: Dict[SectionName, SectionOutcome] = {}
        generators = {section: self.build_generator(section) for section in sections}
        executor = ThreadPoolExecutor(
            max_workers=min(self.config.max_workers, len(sections)),
            thread_name_prefix="lesson-section",
        )
        try:
            futures: Dict[Future, SectionName] = {}
            deadlines: Dict[Future, float] = {}
            for section in sections:
                dispatcher.publish(tracker.section_started(section))
                future = executor.submit(self._run_section, generators[section], context, {})
                futures[future] = section
                deadlines[future] = time.monotonic() + self.config.timeout_for(section)

            pending = set(futures)
            while pending:
                next_deadline = min(deadlines[f] for f in pending)
                done, _ = wait(
                    pending,
                    timeout=max(0.0, next_deadline - time.monotonic()),
                    return_when=FIRST_COMPLETED,
                )
                for future in done:
                    pending.discard(future)
                    outcome = future.result()
                    outcomes[outcome.name] = outcome
                    self._finish_section(outcome, tracker, quality, dispatcher)

                now = time.monotonic()
                for future in [f for f in pending if deadlines[f] <= now]:
                    pending.discard(future)
                    future.cancel()
                    section = futures[future]
                    timeout = self.config.timeout_for(section)
                    logger.warning(
                        f"Section {section.value} timed out after {timeout:g}s",
                        extra={"section": section.value, "error_kind": ErrorKind.EMPTY_OUTPUT.value},
                    )
                    outcome = generators[section].fallback_outcome(
                        context, None, ErrorKind.EMPTY_OUTPUT, f"Section timed out after {timeout:g}s", attempts=1
                    )
                    outcomes[section] = outcome
                    self._finish_section(outcome, tracker, quality, dispatcher)
        finally:
            # Timed-out workers finish in the background; their results are discarded
            executor.shutdown(wait=False, cancel_futures=True)
        return outcomes

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def assemble(
        self,
        request: LessonRequest,
        context: SharedContext,
        sections: List[SectionName],
        outcomes: Mapping[SectionName, SectionOutcome],
        quality: QualityMetricsTracker,
    ) -> GeneratedLesson:
        """Collect outcomes into a GeneratedLesson in lesson order."""
        ordered = [outcomes[section] for section in sections]
        degraded = [o.degraded for o in ordered if o.degraded is not None]

        warnings: List[str] = []
        if context.used_heuristics:
            warnings.append("context: built partly from heuristic analysis")
        for outcome in ordered:
            warnings.extend(f"{outcome.name.value}: {w}" for w in outcome.validation.warnings)

        notice = None
        if degraded and self.config.degradation_policy == "notify_user":
            names = ", ".join(d.section.value for d in degraded)
            notice = DEGRADED_NOTICE.format(sections=names)

        return GeneratedLesson(
            lesson_title=context.lesson_title,
            lesson_type=request.lesson_type,
            student_level=request.student_level,
            target_language=request.target_language,
            sections=[o.payload for o in ordered],
            degraded_sections=degraded,
            warnings=warnings,
            quality=quality.report(),
            notice=notice,
            source_url=request.source_url,
        )


# ============================================================================
# Public entry points
# ============================================================================


def generate_lesson(
    params: Union[LessonRequest, Mapping[str, Any]],
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[GeneratorConfig] = None,
    llm_client: Optional[LLMClient] = None,
) -> GeneratedLesson:
    """Generate a lesson in one call. See ``LessonGenerator.generate``."""
    generator = LessonGenerator(config=config, llm_client=llm_client)
    return generator.generate(params, on_progress=on_progress)


def stream_lesson_events(
    params: Union[LessonRequest, Mapping[str, Any]],
    config: Optional[GeneratorConfig] = None,
    llm_client: Optional[LLMClient] = None,
    generator: Optional[LessonGenerator] = None,
) -> Iterator[Union[ProgressEvent, CompleteEvent, ErrorEvent]]:
    """Yield progress events, then exactly one complete or error event.

    Generation runs on a worker thread; events are yielded as they arrive.
    """
    generator = generator or LessonGenerator(config=config, llm_client=llm_client)
    events: "queue.Queue" = queue.Queue()

    def run() -> None:
        try:
            lesson = generator.generate(params, on_progress=lambda u: events.put(ProgressEvent.from_update(u)))
            events.put(CompleteEvent(lesson=lesson))
        except Exception as e:
            logger.error(f"Lesson generation failed: {e}", exc_info=not isinstance(e, ContextBuildFailure))
            events.put(ErrorEvent(**user_message_for(e)))

    worker = threading.Thread(target=run, name="lesson-stream", daemon=True)
    worker.start()
    while True:
        event = events.get()
        yield event
        if not isinstance(event, ProgressEvent):
            break
    worker.join()
