"""Pytest configuration and shared fixtures."""

import os
import tempfile
from concurrent.futures import Future

import pytest

# Keep file-backed stores created at import time (backend.main) out of the repo
os.environ.setdefault("POSEGEN_DATA_DIR", tempfile.mkdtemp(prefix="posegen-test-"))

from posegen.jobs import TaskLedger
from posegen.jobs.store import FileTaskStore
from posegen.prompts import PromptLibrary
from posegen.repository import FileRepository
from posegen.schemas.models import (
    Drama,
    Episode,
    GenerateImageRequest,
    ImageGeneration,
    ImageGenerationStatus,
)
from posegen.service import PoseService
from posegen.pipelines import PollPolicy


class MockLLM:
    """Returns a canned response (or raises) and records every call."""

    def __init__(self, response: str = "[]", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def complete(self, prompt: str, system_prompt: str | None = None, **kwargs) -> str:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response


class ScriptedImageService:
    """Image generation collaborator whose record walks through ``statuses``.

    Each entry is a status, or (status, image_url, error_message). The last
    entry repeats once the script runs out. An Exception entry makes that
    read raise.
    """

    def __init__(self, statuses=None, submit_error: Exception | None = None):
        self.statuses = list(statuses or [ImageGenerationStatus.PROCESSING])
        self.submit_error = submit_error
        self.requests: list[GenerateImageRequest] = []
        self.reads = 0

    def submit(self, request: GenerateImageRequest) -> ImageGeneration:
        if self.submit_error is not None:
            raise self.submit_error
        self.requests.append(request)
        return ImageGeneration(id=7, prompt=request.prompt, size=request.size, provider=request.provider)

    def get(self, generation_id: int) -> ImageGeneration | None:
        entry = self.statuses[min(self.reads, len(self.statuses) - 1)]
        self.reads += 1
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, tuple):
            status, url, error = entry
        else:
            status, url, error = entry, None, None
        return ImageGeneration(id=generation_id, status=status, image_url=url, error_message=error)


class InlineRunner:
    """Runs submitted work immediately on the calling thread."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs) -> Future:
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait: bool = True) -> None:
        pass


@pytest.fixture
def repository(tmp_path):
    return FileRepository(tmp_path)


@pytest.fixture
def ledger(tmp_path):
    return TaskLedger(FileTaskStore(tmp_path))


@pytest.fixture
def prompts():
    return PromptLibrary("en")


@pytest.fixture
def drama(repository):
    return repository.create_drama(
        Drama(
            title="Night Shift",
            default_style="anime, soft lighting",
            default_prop_style="clean line art",
            default_image_ratio="16:9",
            default_image_size="1536x1024",
        )
    )


@pytest.fixture
def episode(repository, drama):
    return repository.create_episode(
        Episode(drama_id=drama.id, title="Episode 1", script_content="Alice raises her hand.")
    )


@pytest.fixture
def make_service(repository, ledger, prompts):
    """Build a PoseService around the shared repository and ledger."""

    def _make(llm=None, image_service=None, runner=None, poll_policy=None, **kwargs):
        kwargs.setdefault("sleep", lambda _: None)
        return PoseService(
            repository=repository,
            ledger=ledger,
            llm=llm or MockLLM(),
            image_service=image_service or ScriptedImageService(),
            runner=runner or InlineRunner(),
            prompts=prompts,
            poll_policy=poll_policy or PollPolicy(interval=0.0, max_attempts=5),
            **kwargs,
        )

    return _make
