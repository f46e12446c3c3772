"""Tests for API endpoints."""

import httpx
import pytest

from gitpanel.fingerprint import fingerprint
from gitpanel.models import DiffKind, DiffPayload, Hunk
from gitpanel.patch import parse_hunks, synthetic_header

SCROLL_PATCH = "@@ -1,1 +1,3 @@\n-export const sentinel = 0;\n+a\n+b\n+c"
NOTES_DIFF = "\n".join(
    [
        "diff --git a/notes.txt b/notes.txt",
        "--- a/notes.txt",
        "+++ b/notes.txt",
        "@@ -1,3 +1,3 @@",
        " one",
        "-two",
        "+TWO",
        " three",
    ]
)


def notes_hunks(text: str = NOTES_DIFF) -> list[dict]:
    return [hunk.model_dump(mode="json") for hunk in parse_hunks(text, "notes.txt")]


class TestHealthEndpoint:
    """Test /api/health endpoint."""

    @pytest.mark.anyio
    async def test_health_returns_ok(self, api_client: httpx.AsyncClient) -> None:
        """Health check returns ok status."""
        response = await api_client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "version": "0.3.0"}

    @pytest.mark.anyio
    async def test_request_id_echoed(self, api_client: httpx.AsyncClient) -> None:
        """A client request id is returned on the response."""
        response = await api_client.get("/api/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
        generated = await api_client.get("/api/health")
        assert generated.headers["X-Request-ID"]


class TestDiffEndpoints:
    """Test /api/diff endpoints."""

    @pytest.mark.anyio
    async def test_canonicalize_bare_hunk(self, api_client: httpx.AsyncClient) -> None:
        """A headerless hunk comes back as a renderable diff."""
        response = await api_client.post(
            "/api/diff/canonicalize",
            json={"path": "src/scroll-target.ts", "patch_text": SCROLL_PATCH},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["patch"] == synthetic_header("src/scroll-target.ts") + "\n" + SCROLL_PATCH
        assert data["old_content"] == "export const sentinel = 0;"
        assert data["new_content"] == "a\nb\nc"
        assert data["hunk_count"] == 1

    @pytest.mark.anyio
    async def test_canonicalize_uses_hunks_as_fallback(self, api_client: httpx.AsyncClient) -> None:
        """Unparsable text is rescued by the structured hunk list."""
        response = await api_client.post(
            "/api/diff/canonicalize",
            json={"path": "notes.txt", "patch_text": "garbled output", "hunks": notes_hunks()},
        )

        assert response.status_code == 200
        assert response.json()["patch"] == NOTES_DIFF

    @pytest.mark.anyio
    async def test_canonicalize_hunks_only(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.post(
            "/api/diff/canonicalize",
            json={"path": "notes.txt", "hunks": notes_hunks()},
        )

        assert response.status_code == 200
        assert response.json()["new_content"] == "one\nTWO\nthree"

    @pytest.mark.anyio
    async def test_canonicalize_failure(self, api_client: httpx.AsyncClient) -> None:
        """Errors of both attempts are reported."""
        response = await api_client.post(
            "/api/diff/canonicalize",
            json={
                "path": "x.txt",
                "patch_text": "plain text",
                "fallback_patch_text": "@@ nothing @@\nfoo",
            },
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "DIFF_PARSE_FAILED"
        assert error["message"] == "No hunk header found in patch | Parsed empty diff from hunked patch"

    @pytest.mark.anyio
    async def test_canonicalize_empty(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.post(
            "/api/diff/canonicalize", json={"path": "x.txt", "patch_text": ""}
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "EMPTY_DIFF"

    @pytest.mark.anyio
    async def test_invalid_body(self, api_client: httpx.AsyncClient) -> None:
        """Schema violations use the shared error envelope."""
        response = await api_client.post("/api/diff/canonicalize", json={"path": ""})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.anyio
    async def test_fingerprint(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.post(
            "/api/diff/fingerprint", json={"header": "@@ -1 +1 @@", "content": "-a\n+b"}
        )

        assert response.status_code == 200
        assert response.json() == {"content_hash": fingerprint("@@ -1 +1 @@", "-a\n+b")}

    @pytest.mark.anyio
    async def test_parse_hunks(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.post(
            "/api/diff/hunks", json={"path": "notes.txt", "text": NOTES_DIFF, "kind": "staged"}
        )

        assert response.status_code == 200
        [hunk] = response.json()
        assert hunk["kind"] == "staged"
        assert hunk["header"] == "@@ -1,3 +1,3 @@"
        assert hunk["id"].startswith("1:3:1:3:")


class TestChangelistEndpoints:
    """Test /api/repos/{repo_id} endpoints."""

    @pytest.mark.anyio
    async def test_initial_state(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.get("/api/repos/r1/changelists")

        assert response.status_code == 200
        data = response.json()
        assert [item["id"] for item in data["lists"]] == ["default"]
        assert data["active_id"] == "default"

    @pytest.mark.anyio
    async def test_create_rename_activate_delete(self, api_client: httpx.AsyncClient) -> None:
        created = await api_client.post("/api/repos/r1/changelists", json={"name": "Feature"})
        assert created.status_code == 201
        changelist_id = created.json()["id"]
        assert changelist_id.startswith("cl-")

        renamed = await api_client.patch(
            f"/api/repos/r1/changelists/{changelist_id}", json={"name": "Renamed"}
        )
        assert renamed.json() == {"ok": True}
        activated = await api_client.post(f"/api/repos/r1/changelists/{changelist_id}/activate")
        assert activated.status_code == 200

        state = (await api_client.get("/api/repos/r1/changelists")).json()
        assert state["active_id"] == changelist_id
        assert state["lists"][1]["name"] == "Renamed"

        deleted = await api_client.delete(f"/api/repos/r1/changelists/{changelist_id}")
        assert deleted.status_code == 200
        state = (await api_client.get("/api/repos/r1/changelists")).json()
        assert state["active_id"] == "default"
        assert len(state["lists"]) == 1

    @pytest.mark.anyio
    async def test_unknown_changelist(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.post("/api/repos/r1/changelists/cl-missing/activate")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.anyio
    async def test_delete_default_refused(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.delete("/api/repos/r1/changelists/default")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "CHANGELIST_ERROR"

    @pytest.mark.anyio
    async def test_file_assignments(self, api_client: httpx.AsyncClient) -> None:
        changelist_id = (
            await api_client.post("/api/repos/r1/changelists", json={"name": "Files"})
        ).json()["id"]

        await api_client.post(
            f"/api/repos/r1/changelists/{changelist_id}/files", json={"paths": ["a.txt", "b.txt"]}
        )
        await api_client.post("/api/repos/r1/files/unassign", json={"paths": ["a.txt"]})

        state = (await api_client.get("/api/repos/r1/changelists")).json()
        assert state["assignments"] == {"b.txt": changelist_id}

        await api_client.post("/api/repos/r1/files/clear", json={"paths": ["b.txt"]})
        state = (await api_client.get("/api/repos/r1/changelists")).json()
        assert state["assignments"] == {}

    @pytest.mark.anyio
    async def test_hunk_assignment_and_invalidation(self, api_client: httpx.AsyncClient) -> None:
        """Changing a file after assigning its hunk reports the hunk as invalid."""
        changelist_id = (
            await api_client.post("/api/repos/r1/changelists", json={"name": "Hunks"})
        ).json()["id"]

        assigned = await api_client.post(
            f"/api/repos/r1/changelists/{changelist_id}/hunks",
            json={"path": "notes.txt", "hunks": notes_hunks()},
        )
        assert assigned.status_code == 200
        assert assigned.json()["changelist_id"] == changelist_id

        valid = await api_client.post(
            "/api/repos/r1/hunks/invalid", json={"path": "notes.txt", "hunks": notes_hunks()}
        )
        assert valid.json() == []

        edited = NOTES_DIFF.replace("+TWO", "+Two")
        invalid = await api_client.post(
            "/api/repos/r1/hunks/invalid", json={"path": "notes.txt", "hunks": notes_hunks(edited)}
        )
        assert len(invalid.json()) == 1

        hunk_id = assigned.json()["hunks"][0]["id"]
        await api_client.post(
            "/api/repos/r1/hunks/unassign", json={"path": "notes.txt", "hunk_ids": [hunk_id]}
        )
        state = (await api_client.get("/api/repos/r1/changelists")).json()
        assert state["hunk_assignments"] == {}

    @pytest.mark.anyio
    async def test_assign_no_hunks_rejected(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.post(
            "/api/repos/r1/changelists/default/hunks", json={"path": "notes.txt", "hunks": []}
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "no hunks provided"


class FakeDiffSource:
    """Stands in for git, serving the hunks of an edited notes.txt."""

    def __init__(self, worktree: str) -> None:
        self.worktree = worktree

    def diff_for_path(self, path: str, kind: DiffKind) -> DiffPayload:
        edited = NOTES_DIFF.replace("+TWO", "+Two")
        return DiffPayload(text=edited, hunks=parse_hunks(edited, path, kind))


class TestCommitPreviewEndpoint:
    """Test /api/repos/{repo_id}/changelists/{id}/preview."""

    @pytest.mark.anyio
    async def test_stale_hunks_block_preview(
        self, api_client: httpx.AsyncClient, monkeypatch, tmp_path
    ) -> None:
        monkeypatch.setattr("gitpanel.api.changelists.GitDiffSource", FakeDiffSource)
        await api_client.post(
            "/api/repos/r1/changelists/default/hunks",
            json={"path": "notes.txt", "hunks": notes_hunks()},
        )

        response = await api_client.post(
            "/api/repos/r1/changelists/default/preview",
            json={
                "worktree": str(tmp_path),
                "files": [{"path": "notes.txt", "status": "unstaged"}],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["blocked"] is True
        assert data["hunk_files"] == ["notes.txt"]
        assert [file["changelist_partial"] for file in data["files"]] == [True]
        assert len(data["invalid_hunks"]) == 1

    @pytest.mark.anyio
    async def test_empty_changelist(self, api_client: httpx.AsyncClient, tmp_path) -> None:
        response = await api_client.post(
            "/api/repos/r1/changelists/default/preview",
            json={"worktree": str(tmp_path), "files": []},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Changelist has no files."

    @pytest.mark.anyio
    async def test_stored_hunk_kind_round_trips(self, api_client: httpx.AsyncClient) -> None:
        hunk = Hunk(
            id="h",
            kind=DiffKind.STAGED,
            header="@@ -1 +1 @@",
            old_start=1,
            old_lines=1,
            new_start=1,
            new_lines=1,
            content="-a\n+b",
        )
        await api_client.post(
            "/api/repos/r1/changelists/default/hunks",
            json={"path": "x.txt", "hunks": [hunk.model_dump(mode="json")]},
        )
        state = (await api_client.get("/api/repos/r1/changelists")).json()
        assert state["hunk_assignments"]["x.txt"]["hunks"][0]["kind"] == "staged"


class UnchangedDiffSource:
    """Stands in for git, serving notes.txt exactly as it was assigned."""

    def __init__(self, worktree: str) -> None:
        self.worktree = worktree

    def diff_for_path(self, path: str, kind: DiffKind) -> DiffPayload:
        return DiffPayload(text=NOTES_DIFF, hunks=parse_hunks(NOTES_DIFF, path, kind))


class TestCommitCheckEndpoint:
    """Test /api/repos/{repo_id}/changelists/{id}/commit-check."""

    @pytest.mark.anyio
    async def test_valid_assignments(
        self, api_client: httpx.AsyncClient, monkeypatch, tmp_path
    ) -> None:
        monkeypatch.setattr("gitpanel.api.changelists.GitDiffSource", UnchangedDiffSource)
        await api_client.post(
            "/api/repos/r1/changelists/default/hunks",
            json={"path": "notes.txt", "hunks": notes_hunks()},
        )
        await api_client.post(
            "/api/repos/r1/changelists/default/files", json={"paths": ["a.txt"]}
        )

        response = await api_client.post(
            "/api/repos/r1/changelists/default/commit-check",
            json={"worktree": str(tmp_path)},
        )

        assert response.status_code == 200
        assert response.json() == {"changelist_id": "default", "files": ["a.txt", "notes.txt"]}

    @pytest.mark.anyio
    async def test_stale_hunks_conflict(
        self, api_client: httpx.AsyncClient, monkeypatch, tmp_path
    ) -> None:
        """A stale hunk answers 409 with the hunks to reselect."""
        monkeypatch.setattr("gitpanel.api.changelists.GitDiffSource", FakeDiffSource)
        await api_client.post(
            "/api/repos/r1/changelists/default/hunks",
            json={"path": "notes.txt", "hunks": notes_hunks()},
        )

        response = await api_client.post(
            "/api/repos/r1/changelists/default/commit-check",
            json={"worktree": str(tmp_path)},
        )

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "INVALID_HUNKS"
        [stale] = error["details"]["invalid_hunks"]
        assert stale["id"] == notes_hunks()[0]["id"]

    @pytest.mark.anyio
    async def test_unknown_changelist(self, api_client: httpx.AsyncClient, tmp_path) -> None:
        response = await api_client.post(
            "/api/repos/r1/changelists/missing/commit-check",
            json={"worktree": str(tmp_path)},
        )

        assert response.status_code == 404

    @pytest.mark.anyio
    async def test_worktree_without_git_dir(self, api_client: httpx.AsyncClient, tmp_path) -> None:
        """A worktree lacking .git is reported as a git error before anything runs."""
        await api_client.post(
            "/api/repos/r1/changelists/default/hunks",
            json={"path": "notes.txt", "hunks": notes_hunks()},
        )

        response = await api_client.post(
            "/api/repos/r1/changelists/default/commit-check",
            json={"worktree": str(tmp_path)},
        )

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "GIT_ERROR"
        assert error["message"].startswith("Not a git repository")
