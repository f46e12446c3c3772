"""Tests for the diff worker and the last-issued-wins dispatch channel."""

import asyncio
from concurrent.futures import Executor, Future, ProcessPoolExecutor

import pytest

from gitpanel.dispatch import (
    DiffDispatchChannel,
    DiffFailure,
    DiffRequest,
    DiffSuccess,
    build_renderable_diff,
    handle_request,
)
from gitpanel.errors import PatchParseError
from gitpanel.patch import synthetic_header

SCROLL_PATCH = "@@ -1,1 +1,3 @@\n-export const sentinel = 0;\n+a\n+b\n+c"
OTHER_PATCH = "@@ -1 +1 @@\n-old\n+new"


class ManualExecutor(Executor):
    """Holds submitted work until the test completes it, in any order."""

    def __init__(self) -> None:
        self.pending: list[tuple[Future, object, tuple]] = []

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        self.pending.append((future, fn, args))
        return future

    def complete(self, index: int) -> None:
        future, fn, args = self.pending[index]
        future.set_result(fn(*args))


class FailingExecutor(Executor):
    """Fails every submitted job."""

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        future.set_exception(RuntimeError("pool crashed"))
        return future


def _request(seq: int, patch_text: str, fallback: str | None = None, path: str = "src/x.ts") -> dict:
    return DiffRequest(seq=seq, path=path, patch_text=patch_text, fallback_patch_text=fallback).model_dump()


class TestBuildRenderableDiff:
    """Test the full build pipeline for one patch source."""

    def test_bare_hunk(self) -> None:
        """A headerless hunk renders with a synthetic header and buffers."""
        diff = build_renderable_diff("src/scroll-target.ts", SCROLL_PATCH)
        assert diff.path == "src/scroll-target.ts"
        assert diff.patch == synthetic_header("src/scroll-target.ts") + "\n" + SCROLL_PATCH
        assert diff.old_content == "export const sentinel = 0;"
        assert diff.new_content == "a\nb\nc"
        assert (diff.hunk_count, diff.additions, diff.deletions) == (1, 3, 1)

    def test_trailing_whitespace_survives(self) -> None:
        """Trailing spaces on the last context line reach the rendered buffers."""
        diff = build_renderable_diff("f.txt", "@@ -1,2 +1,2 @@\n-a\n+b\n tail  ")
        assert diff.new_content == "b\ntail  "
        assert diff.patch.endswith("\n tail  ")

    def test_extracts_from_multi_file_diff(self) -> None:
        text = "\n".join(
            [
                "diff --git a/one.txt b/one.txt",
                "--- a/one.txt",
                "+++ b/one.txt",
                "@@ -1 +1 @@",
                "-1",
                "+one",
                "diff --git a/two.txt b/two.txt",
                "--- a/two.txt",
                "+++ b/two.txt",
                "@@ -1 +1 @@",
                "-2",
                "+two",
            ]
        )
        diff = build_renderable_diff("./two.txt", text)
        assert diff.path == "two.txt"
        assert diff.new_content == "two"
        assert "one" not in diff.patch

    @pytest.mark.parametrize(
        ("patch_text", "message"),
        [
            ("diff --git a/x b/x\nBinary files a/x and b/x differ", "Binary diff cannot be rendered"),
            ("   \r\n", "Empty patch"),
            ("just some text", "No hunk header found in patch"),
            ("@@ nothing @@\nfoo", "Parsed empty diff from hunked patch"),
        ],
    )
    def test_failures(self, patch_text: str, message: str) -> None:
        with pytest.raises(PatchParseError, match=message):
            build_renderable_diff("x", patch_text)


class TestHandleRequest:
    """Test the worker message handler."""

    def test_success(self) -> None:
        response = handle_request(_request(7, SCROLL_PATCH))
        assert response["type"] == "success"
        assert response["seq"] == 7
        assert response["diff"]["new_content"] == "a\nb\nc"
        assert response["duration_ms"] >= 0

    def test_primary_preferred(self) -> None:
        """The primary patch wins when both sources parse."""
        response = handle_request(_request(1, SCROLL_PATCH, OTHER_PATCH))
        assert response["diff"]["new_content"] == "a\nb\nc"

    def test_fallback_used_when_primary_fails(self) -> None:
        response = handle_request(_request(2, "not a diff", SCROLL_PATCH))
        assert response["type"] == "success"
        assert response["diff"]["old_content"] == "export const sentinel = 0;"

    def test_both_fail_reports_every_error(self) -> None:
        """Errors of all attempts are joined in order."""
        response = handle_request(_request(3, "plain text", "@@ nothing @@\nfoo"))
        assert response == {
            "type": "error",
            "seq": 3,
            "duration_ms": response["duration_ms"],
            "error": "No hunk header found in patch | Parsed empty diff from hunked patch",
        }

    def test_identical_fallback_not_retried(self) -> None:
        response = handle_request(_request(4, "plain text", "plain text"))
        assert response["error"] == "No hunk header found in patch"

    def test_unexpected_exception_is_reported(self, monkeypatch) -> None:
        """Exceptions other than parse errors do not escape the worker."""

        def explode(path: str, patch_text: str):
            raise ValueError("bad input")

        monkeypatch.setattr("gitpanel.dispatch.worker.build_renderable_diff", explode)
        response = handle_request(_request(5, SCROLL_PATCH))
        assert response["error"] == "ValueError: bad input"


class TestDiffDispatchChannel:
    """Test sequence handling of the dispatch channel."""

    def test_issue_increments_seq(self) -> None:
        channel = DiffDispatchChannel(ManualExecutor())
        assert channel.issue("a", "x").seq == 1
        assert channel.issue("a", "y").seq == 2
        assert channel.latest_seq == 2

    def test_deliver_drops_stale_response(self) -> None:
        """Only the response to the newest request is applied."""
        outcomes = []
        channel = DiffDispatchChannel(ManualExecutor(), on_outcome=outcomes.append)
        first = channel.issue("src/x.ts", SCROLL_PATCH)
        second = channel.issue("src/x.ts", OTHER_PATCH)

        assert channel.deliver(handle_request(first.model_dump())) is None
        assert channel.last_outcome is None

        outcome = channel.deliver(handle_request(second.model_dump()))
        assert isinstance(outcome, DiffSuccess)
        assert outcome.seq == 2
        assert outcomes == [outcome]
        assert channel.last_outcome is outcome

    @pytest.mark.anyio
    async def test_out_of_order_completion(self) -> None:
        """An older request finishing last never overwrites the newer result."""
        executor = ManualExecutor()
        outcomes = []
        channel = DiffDispatchChannel(executor, on_outcome=outcomes.append)

        first = asyncio.create_task(channel.canonicalize("a.ts", SCROLL_PATCH))
        second = asyncio.create_task(channel.canonicalize("b.ts", OTHER_PATCH))
        while len(executor.pending) < 2:
            await asyncio.sleep(0)

        executor.complete(1)
        newest = await second
        executor.complete(0)
        stale = await first

        assert isinstance(newest, DiffSuccess)
        assert newest.diff.path == "b.ts"
        assert stale is None
        assert outcomes == [newest]
        assert channel.last_outcome is newest

    @pytest.mark.anyio
    async def test_in_order_completion(self) -> None:
        """Requests answered before the next is issued are all applied."""
        executor = ManualExecutor()
        channel = DiffDispatchChannel(executor)

        task = asyncio.create_task(channel.canonicalize("a.ts", "plain text"))
        while not executor.pending:
            await asyncio.sleep(0)
        executor.complete(0)
        outcome = await task

        assert isinstance(outcome, DiffFailure)
        assert outcome.error == "No hunk header found in patch"

    @pytest.mark.anyio
    async def test_executor_failure_becomes_error_outcome(self) -> None:
        channel = DiffDispatchChannel(FailingExecutor())
        outcome = await channel.canonicalize("a.ts", SCROLL_PATCH)
        assert isinstance(outcome, DiffFailure)
        assert outcome.seq == 1
        assert outcome.error == "Diff worker failed: pool crashed"

    @pytest.mark.anyio
    async def test_process_pool(self) -> None:
        """Requests round-trip through real worker processes."""
        executor = ProcessPoolExecutor(max_workers=1)
        channel = DiffDispatchChannel(executor)
        try:
            outcome = await channel.canonicalize("src/scroll-target.ts", SCROLL_PATCH)
        finally:
            executor.shutdown(wait=True)
        assert isinstance(outcome, DiffSuccess)
        assert outcome.diff.old_content == "export const sentinel = 0;"
        assert outcome.diff.new_content == "a\nb\nc"

    def test_shutdown_keeps_borrowed_executor(self) -> None:
        executor = ManualExecutor()
        channel = DiffDispatchChannel(executor)
        channel.shutdown()
        assert channel._get_executor() is executor
