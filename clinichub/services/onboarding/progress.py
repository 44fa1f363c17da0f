"""
Step Progress Tracker

Tracks where each user is in the onboarding wizard. The ``StepProgress`` row
is the source of truth; reads go through a cache that every write
invalidates, both immediately and again once the unit of work commits.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from clinichub.config.settings import settings
from clinichub.models.onboarding import StepProgress
from clinichub.services.base import CachedService, ConflictError, NotFoundError, ValidationError
from clinichub.services.onboarding.plan_config import COMPLETED, PlanConfiguration, get_configuration

ENTITY_FIELDS = ("organization_id", "complex_id", "clinic_id")


@dataclass
class ProgressSnapshot:
    user_id: int
    plan_type: str
    current_step: str
    completed_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)
    skipped_to_dashboard: bool = False
    organization_id: Optional[int] = None
    complex_id: Optional[int] = None
    clinic_id: Optional[int] = None

    @property
    def is_completed(self) -> bool:
        return self.current_step == COMPLETED

    @classmethod
    def from_model(cls, progress: StepProgress) -> "ProgressSnapshot":
        return cls(
            user_id=progress.user_id,
            plan_type=progress.plan_type,
            current_step=progress.current_step,
            completed_steps=list(progress.completed_steps or []),
            skipped_steps=list(progress.skipped_steps or []),
            skipped_to_dashboard=bool(progress.skipped_to_dashboard),
            organization_id=progress.organization_id,
            complex_id=progress.complex_id,
            clinic_id=progress.clinic_id,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressSnapshot":
        return cls(**{key: data.get(key) for key in cls.__dataclass_fields__ if key in data})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "plan_type": self.plan_type,
            "current_step": self.current_step,
            "completed_steps": list(self.completed_steps),
            "skipped_steps": list(self.skipped_steps),
            "skipped_to_dashboard": self.skipped_to_dashboard,
            "organization_id": self.organization_id,
            "complex_id": self.complex_id,
            "clinic_id": self.clinic_id,
            "is_completed": self.is_completed,
        }


@dataclass
class SkipOutcome:
    skipped_steps: List[str]
    next_step: str


@dataclass
class DependencyCheck:
    can_proceed: bool
    missing_steps: List[str] = field(default_factory=list)


def next_step(config: PlanConfiguration, completed: List[str], skipped: List[str]) -> str:
    """First step neither completed nor skipped."""
    done = set(completed) | set(skipped)
    for step in config.step_sequence:
        if step not in done:
            return step
    return COMPLETED


class StepProgressTracker(CachedService):
    """Persisted onboarding wizard state with a read-through cache."""

    def __init__(self, cache=None, cache_ttl: int = None):
        super().__init__(
            "StepProgressTracker",
            cache=cache,
            cache_ttl=cache_ttl or settings.progress_cache_ttl,
            cache_prefix="onboarding_progress",
        )
        # Keys written by an uncommitted unit of work are neither read from nor
        # written to the cache until that work commits.
        self._dirty_keys = set()

    # Reads

    def find_progress(self, uow, user_id: int) -> Optional[ProgressSnapshot]:
        cache_key = self._get_cache_key(user_id)
        use_cache = cache_key not in self._dirty_keys
        cached = self._get_from_cache(cache_key) if use_cache else None
        if cached:
            return ProgressSnapshot.from_dict(cached)

        progress = self._find_row(uow, user_id)
        if progress is None:
            return None

        snapshot = ProgressSnapshot.from_model(progress)
        if use_cache:
            self._put_in_cache(cache_key, snapshot.to_dict())
        return snapshot

    def get_progress(self, uow, user_id: int) -> ProgressSnapshot:
        snapshot = self.find_progress(uow, user_id)
        if snapshot is None:
            raise NotFoundError("Onboarding progress", user_id)
        return snapshot

    def validate_step_dependency(self, uow, user_id: int, step: str) -> DependencyCheck:
        """Whether every prerequisite of ``step`` is completed or skipped."""
        progress = self._get_row(uow, user_id)
        config = self._config_for(progress)
        self._require_step(config, step)

        done = set(progress.completed_steps or []) | set(progress.skipped_steps or [])
        missing = [required for required in config.prerequisites(step)
                   if required in config.step_sequence and required not in done]
        return DependencyCheck(can_proceed=not missing, missing_steps=missing)

    # Writes

    def start(self, uow, user_id: int, plan_type: str) -> ProgressSnapshot:
        """Create the progress record; an existing record on the same plan is returned as is."""
        config = get_configuration(plan_type)
        if config is None:
            raise ValidationError("Invalid plan type", field="plan_type", value=plan_type)

        progress = self._find_row(uow, user_id)
        if progress is not None:
            if progress.plan_type != config.plan_type.value:
                raise self._plan_conflict(progress)
            return ProgressSnapshot.from_model(progress)

        progress = StepProgress(
            user_id=user_id,
            plan_type=config.plan_type.value,
            current_step=config.step_sequence[0],
            completed_steps=[],
            skipped_steps=[],
            skipped_to_dashboard=False,
        )
        uow.add(progress)
        self._written(uow, progress)
        self.logger.info(f"Onboarding progress started for user {user_id} on the {config.plan_type.value} plan")
        return ProgressSnapshot.from_model(progress)

    def mark_step_complete(self, uow, user_id: int, step: str) -> ProgressSnapshot:
        progress = self._get_row(uow, user_id)
        self._require_open(progress)
        config = self._config_for(progress)
        self._require_step(config, step)

        completed = list(progress.completed_steps or [])
        if step not in completed:
            completed.append(step)
        progress.completed_steps = completed
        progress.current_step = next_step(config, completed, progress.skipped_steps or [])
        progress.skipped_to_dashboard = False
        self._written(uow, progress)
        self.logger.info(f"User {user_id} completed step {step}; next is {progress.current_step}")
        return ProgressSnapshot.from_model(progress)

    def skip_current_step(self, uow, user_id: int) -> SkipOutcome:
        """Skip the current step together with the rest of its skip group."""
        progress = self._get_row(uow, user_id)
        self._require_open(progress)
        config = self._config_for(progress)

        current = progress.current_step
        group = config.skip_group(current)
        if group is None:
            raise ValidationError(
                f"Step {current} cannot be skipped on the {config.name}", field="step", value=current
            )

        completed = list(progress.completed_steps or [])
        skipped = list(progress.skipped_steps or [])
        newly_skipped = [step for step in group if step not in completed and step not in skipped]
        skipped.extend(newly_skipped)

        progress.skipped_steps = skipped
        progress.current_step = next_step(config, completed, skipped)
        progress.skipped_to_dashboard = False
        self._written(uow, progress)
        self.logger.info(f"User {user_id} skipped {newly_skipped}; next is {progress.current_step}")
        return SkipOutcome(skipped_steps=newly_skipped, next_step=progress.current_step)

    def skip_to_dashboard(self, uow, user_id: int) -> ProgressSnapshot:
        """Leave the wizard unfinished; the next saved or skipped step resumes it."""
        progress = self._get_row(uow, user_id)
        self._require_open(progress)
        progress.skipped_to_dashboard = True
        self._written(uow, progress)
        self.logger.info(f"User {user_id} left onboarding at {progress.current_step} for the dashboard")
        return ProgressSnapshot.from_model(progress)

    def complete(self, uow, user_id: int, plan_type: Optional[str] = None, **entity_ids) -> ProgressSnapshot:
        """
        Mark every remaining step complete, starting the record if needed.

        Used by full submissions, which build the whole hierarchy at once.
        An open record must be on ``plan_type``; a completed record on another
        plan is moved over to it, keeping the steps it already recorded.
        """
        progress = self._find_row(uow, user_id)
        if progress is None:
            self.start(uow, user_id, plan_type)
            progress = self._get_row(uow, user_id)

        config = self._config_for(progress)
        requested = get_configuration(plan_type) if plan_type is not None else config
        if requested is None:
            raise ValidationError("Invalid plan type", field="plan_type", value=plan_type)
        if requested.plan_type != config.plan_type:
            if progress.current_step != COMPLETED:
                raise self._plan_conflict(progress)
            self.logger.info(f"Moving completed onboarding of user {user_id} to the {requested.plan_type.value} plan")
            progress.plan_type = requested.plan_type.value
            config = requested

        skipped = set(progress.skipped_steps or [])
        completed = list(progress.completed_steps or [])
        completed.extend(step for step in config.step_sequence if step not in completed and step not in skipped)

        progress.completed_steps = completed
        progress.current_step = COMPLETED
        progress.skipped_to_dashboard = False
        self._apply_entity_ids(progress, entity_ids)
        self._written(uow, progress)
        self.logger.info(f"Onboarding completed for user {user_id}")
        return ProgressSnapshot.from_model(progress)

    def record_entities(self, uow, user_id: int, **entity_ids) -> ProgressSnapshot:
        """Remember which organization / complex / clinic the wizard is building."""
        progress = self._get_row(uow, user_id)
        self._apply_entity_ids(progress, entity_ids)
        self._written(uow, progress)
        return ProgressSnapshot.from_model(progress)

    # Internals

    def _find_row(self, uow, user_id: int) -> Optional[StepProgress]:
        return uow.session.query(StepProgress).filter(StepProgress.user_id == user_id).first()

    def _get_row(self, uow, user_id: int) -> StepProgress:
        progress = self._find_row(uow, user_id)
        if progress is None:
            raise NotFoundError("Onboarding progress", user_id)
        return progress

    def _config_for(self, progress: StepProgress) -> PlanConfiguration:
        config = get_configuration(progress.plan_type)
        if config is None:
            raise ValidationError("Invalid plan type", field="plan_type", value=progress.plan_type)
        return config

    def _require_step(self, config: PlanConfiguration, step: str) -> None:
        if step not in config.step_sequence:
            raise ValidationError(f"Step {step} is not part of the {config.name}", field="step", value=step)

    def _require_open(self, progress: StepProgress) -> None:
        if progress.current_step == COMPLETED:
            raise ConflictError(
                "Onboarding is already completed", conflicting_resource=f"step_progress:{progress.user_id}"
            )

    def _plan_conflict(self, progress: StepProgress) -> ConflictError:
        return ConflictError(
            f"Onboarding already started with the {progress.plan_type} plan",
            conflicting_resource=f"step_progress:{progress.user_id}",
        )

    def _apply_entity_ids(self, progress: StepProgress, entity_ids: Dict[str, Optional[int]]) -> None:
        for name, value in entity_ids.items():
            if name not in ENTITY_FIELDS:
                raise ValueError(f"Unknown progress entity field: {name}")
            if value is not None:
                setattr(progress, name, value)

    def _written(self, uow, progress: StepProgress) -> None:
        uow.flush()
        cache_key = self._get_cache_key(progress.user_id)
        self._dirty_keys.add(cache_key)
        self._invalidate_cache(cache_key)
        uow.on_commit(lambda: self._committed(cache_key))
        uow.on_rollback(lambda: self._dirty_keys.discard(cache_key))

    def _committed(self, cache_key: str) -> None:
        self._dirty_keys.discard(cache_key)
        self._invalidate_cache(cache_key)
