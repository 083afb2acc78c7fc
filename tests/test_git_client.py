"""Tests for GitClient against real temporary repositories."""

from pathlib import Path

import git
import pytest

from repo_sync.git_client import CommandError, GitClient
from repo_sync.models import AheadBehind, Repository


def _commit(repo: git.Repo, name: str, content: str) -> None:
    path = Path(repo.working_dir) / name
    path.write_text(content, encoding="utf-8")
    repo.index.add([name])
    repo.index.commit(f"Add {name}")


@pytest.fixture
def local_repo(tmp_path: Path) -> git.Repo:
    remote_dir = tmp_path / "remote.git"
    git.Repo.init(remote_dir, bare=True)
    repo = git.Repo.init(tmp_path / "work")
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")
    _commit(repo, "README.md", "hello\n")
    repo.git.branch("-M", "main")
    repo.create_remote("origin", str(remote_dir))
    repo.git.push("-u", "origin", "main")
    return repo


@pytest.fixture
def repository(local_repo: git.Repo) -> Repository:
    return Repository(local_path=local_repo.working_dir)


class TestStatus:
    @pytest.mark.asyncio
    async def test_tracked_branch(self, repository: Repository) -> None:
        status = await GitClient().get_status(repository)

        assert status.branch == "main"
        assert status.upstream_branch == "origin/main"
        assert status.ahead_behind == AheadBehind(ahead=0, behind=0)

    @pytest.mark.asyncio
    async def test_local_commit_is_ahead(
        self, local_repo: git.Repo, repository: Repository
    ) -> None:
        _commit(local_repo, "notes.txt", "more\n")

        status = await GitClient().get_status(repository)

        assert status.ahead_behind == AheadBehind(ahead=1, behind=0)

    @pytest.mark.asyncio
    async def test_new_branch_has_no_upstream(
        self, local_repo: git.Repo, repository: Repository
    ) -> None:
        local_repo.git.checkout("-b", "feature-x")

        status = await GitClient().get_status(repository)

        assert status.branch == "feature-x"
        assert status.upstream_branch is None
        assert status.ahead_behind is None

    @pytest.mark.asyncio
    async def test_detached_head_has_no_branch(
        self, local_repo: git.Repo, repository: Repository
    ) -> None:
        local_repo.git.checkout("--detach")

        status = await GitClient().get_status(repository)

        assert status.branch is None
        assert status.upstream_branch is None

    @pytest.mark.asyncio
    async def test_missing_repository(self, tmp_path: Path) -> None:
        with pytest.raises(CommandError) as excinfo:
            await GitClient().get_status(Repository(local_path=str(tmp_path / "nope")))

        assert excinfo.value.argv == ["status"]
        assert "is not a Git repository" in str(excinfo.value)


class TestCommands:
    @pytest.mark.asyncio
    async def test_list_remotes(self, local_repo: git.Repo, repository: Repository) -> None:
        assert await GitClient().list_remotes(repository) == ["origin"]

        local_repo.create_remote("upstream", local_repo.remotes.origin.url)

        assert sorted(await GitClient().list_remotes(repository)) == ["origin", "upstream"]

    @pytest.mark.asyncio
    async def test_publish_push_sets_upstream(
        self, local_repo: git.Repo, repository: Repository
    ) -> None:
        client = GitClient()
        local_repo.git.checkout("-b", "feature-x")
        _commit(local_repo, "feature.txt", "x\n")

        await client.execute(repository, ["push", "-u", "origin", "feature-x"])

        status = await client.get_status(repository)
        assert status.upstream_branch == "origin/feature-x"
        assert status.ahead_behind == AheadBehind(ahead=0, behind=0)

    @pytest.mark.asyncio
    async def test_pull_and_push(self, local_repo: git.Repo, repository: Repository) -> None:
        client = GitClient()
        _commit(local_repo, "notes.txt", "more\n")

        await client.execute(repository, ["pull", "-r"])
        await client.execute(repository, ["push"])

        status = await client.get_status(repository)
        assert status.ahead_behind == AheadBehind(ahead=0, behind=0)

    @pytest.mark.asyncio
    async def test_failure_carries_git_message(self, repository: Repository) -> None:
        with pytest.raises(CommandError) as excinfo:
            await GitClient().execute(repository, ["push", "missing-remote", "main"])

        assert excinfo.value.argv == ["push", "missing-remote", "main"]
        assert excinfo.value.message
        assert "missing-remote" in excinfo.value.message


class TestFailureMessages:
    @pytest.mark.asyncio
    async def test_merge_conflict_is_reported(
        self, tmp_path: Path, local_repo: git.Repo, repository: Repository
    ) -> None:
        other = git.Repo.clone_from(
            local_repo.remotes.origin.url, tmp_path / "other", branch="main"
        )
        with other.config_writer() as config:
            config.set_value("user", "name", "Other User")
            config.set_value("user", "email", "other@example.com")
        _commit(other, "README.md", "theirs\n")
        other.git.push("origin", "main")

        _commit(local_repo, "README.md", "ours\n")
        with local_repo.config_writer() as config:
            config.set_value("pull", "rebase", "false")

        with pytest.raises(CommandError) as excinfo:
            await GitClient().execute(repository, ["pull"])

        assert excinfo.value.message
        assert "CONFLICT" in excinfo.value.message


class TestEnvironment:
    @pytest.fixture
    def captured(self, monkeypatch: pytest.MonkeyPatch) -> list[dict]:
        calls: list[dict] = []

        def fake_execute(self, command, **kwargs):
            calls.append({"command": command, **kwargs})
            return ""

        monkeypatch.setattr(git.cmd.Git, "execute", fake_execute)
        return calls

    @pytest.mark.asyncio
    async def test_commands_never_prompt_for_credentials(
        self, repository: Repository, captured: list[dict]
    ) -> None:
        await GitClient().execute(repository, ["push"])

        (call,) = captured
        assert call["command"] == ["git", "push"]
        assert call["env"]["GIT_TERMINAL_PROMPT"] == "0"
        assert call["env"]["GCM_INTERACTIVE"] == "never"
        assert "GIT_SSL_NO_VERIFY" not in call["env"]

    @pytest.mark.asyncio
    async def test_ssl_verification_can_be_disabled(
        self, repository: Repository, captured: list[dict]
    ) -> None:
        await GitClient(verify_ssl=False).execute(repository, ["pull"])

        (call,) = captured
        assert call["env"]["GIT_TERMINAL_PROMPT"] == "0"
        assert call["env"]["GIT_SSL_NO_VERIFY"] == "true"
