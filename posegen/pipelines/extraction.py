"""Pose extraction: episode script -> AI -> tolerant parse -> deduplicated poses.

Runs in the background after the task has been created. Every outcome is
reported through the task ledger.
"""

from __future__ import annotations

import logging
from typing import Any, Union

from pydantic import BaseModel, ValidationError

from posegen.errors import AIParseError, DuplicatePoseError
from posegen.jobs import TaskLedger, TaskStatus
from posegen.llm import LLMProvider
from posegen.llm.errors import describe_upstream_error
from posegen.parsing import parse_ai_json
from posegen.prompts import PromptLibrary, resolve_prompt_style
from posegen.repository.base import Repository
from posegen.schemas.models import Episode, Pose, PoseCandidate

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 2000


def derive_description(candidate: PoseCandidate) -> str:
    """Text persisted as the pose description (and later used as image prompt).

    The image prompt is preferred; a distinct description is kept in front of
    it rather than dropped.
    """
    if candidate.image_prompt:
        if candidate.description and candidate.description != candidate.image_prompt:
            return f"{candidate.description}\n{candidate.image_prompt}"
        return candidate.image_prompt
    return candidate.description


class _PoseList(BaseModel):
    poses: list[dict[str, Any]]


# A bare array of objects, or an object wrapping one under "poses"
_CANDIDATES_SHAPE = Union[list[dict[str, Any]], _PoseList]


def parse_candidates(raw: str) -> list[PoseCandidate]:
    """Parse AI output into pose candidates, in output order.

    Accepts a bare array of objects or an object wrapping it under "poses";
    bracketed regions of any other shape (``[2]``, ``["a", "b"]``) are
    skipped. Objects that are not valid candidates are dropped, but a
    non-empty list with no valid candidate at all is a parse failure.
    """
    data = parse_ai_json(raw, _CANDIDATES_SHAPE)
    items = data.poses if isinstance(data, _PoseList) else data

    candidates: list[PoseCandidate] = []
    for i, item in enumerate(items):
        try:
            candidate = PoseCandidate.model_validate(item)
        except ValidationError as e:
            logger.warning("Skipping malformed pose candidate #%d: %s", i, e.errors()[:1])
            continue
        if not candidate.name:
            logger.warning("Skipping pose candidate #%d with empty name", i)
            continue
        candidates.append(candidate)
    if items and not candidates:
        raise AIParseError("AI output contains no valid pose candidates", raw=raw)
    return candidates


class ExtractionPipeline:
    def __init__(
        self,
        repository: Repository,
        ledger: TaskLedger,
        llm: LLMProvider,
        prompts: PromptLibrary,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        self._repository = repository
        self._ledger = ledger
        self._llm = llm
        self._prompts = prompts
        self._max_tokens = max_tokens

    def run(self, task_id: str, episode: Episode) -> None:
        try:
            self._run(task_id, episode)
        except Exception as e:
            logger.exception("Pose extraction task %s crashed", task_id)
            self._ledger.update_error(task_id, f"Pose extraction failed: {str(e)[:300]}")

    def _run(self, task_id: str, episode: Episode) -> None:
        self._ledger.update_status(task_id, TaskStatus.PROCESSING, 0, "analyzing script")

        prompt = self._build_prompt(episode)
        try:
            response = self._llm.complete(prompt, max_tokens=self._max_tokens)
        except Exception as e:
            logger.warning("Pose extraction task %s: AI call failed: %s", task_id, e)
            self._ledger.update_error(task_id, describe_upstream_error(e))
            return

        try:
            candidates = parse_candidates(response)
        except AIParseError as e:
            logger.warning("Pose extraction task %s: unparseable AI output: %r", task_id, e.raw[:500])
            self._ledger.update_error(task_id, f"Failed to parse AI result: {e}")
            return

        self._ledger.update_status(task_id, TaskStatus.PROCESSING, 50, "saving poses")
        created, skipped, failed = self._save(episode.drama_id, candidates)

        message = f"saved {len(created)} of {len(candidates)} poses"
        if skipped:
            message += f"; {len(skipped)} already existed"
        if failed:
            message += f"; {len(failed)} failed: {', '.join(failed)}"
        self._ledger.update_result(
            task_id, [p.model_dump(mode="json") for p in created], message=message
        )
        logger.info("Pose extraction task %s: %s", task_id, message)

    def _build_prompt(self, episode: Episode) -> str:
        drama = None
        try:
            drama = self._repository.get_drama(episode.drama_id)
        except Exception as e:
            # Style overrides are optional; fall back to the plain prompt
            logger.warning("Could not load drama %s for style overrides: %s", episode.drama_id, e)
        style, ratio = resolve_prompt_style(drama)
        return self._prompts.pose_extraction_prompt(
            script=episode.script_content or "", style=style, ratio=ratio
        )

    def _save(
        self, drama_id: int, candidates: list[PoseCandidate]
    ) -> tuple[list[Pose], list[str], list[str]]:
        """Create poses in input order, first name wins.

        Returns (created, skipped names, failed names). A failing create
        only drops that pose.
        """
        created: list[Pose] = []
        skipped: list[str] = []
        failed: list[str] = []
        for candidate in candidates:
            description = derive_description(candidate)
            pose = Pose(
                drama_id=drama_id,
                name=candidate.name,
                type=candidate.type or None,
                description=description or None,
            )
            try:
                if self._repository.find_pose_by_name(drama_id, candidate.name) is not None:
                    skipped.append(candidate.name)
                    continue
                created.append(self._repository.create_pose(pose))
            except DuplicatePoseError:
                # Lost a race with a concurrent extraction, or a repeat in this batch
                skipped.append(candidate.name)
            except Exception as e:
                logger.warning("Failed to create pose %r for drama %s: %s", candidate.name, drama_id, e)
                failed.append(candidate.name)
        return created, skipped, failed

