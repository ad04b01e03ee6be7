"""Unit tests for CommitGraph: commits, branches, checkout and reset."""

from pathlib import Path

import pytest

from twig.constants import INITIAL_COMMIT_MESSAGE, INITIAL_COMMIT_TIMESTAMP
from twig.core import Repository
from twig.errors import (
    InputError,
    NotFoundError,
    PreconditionError,
    WorkingTreeConflictError,
)
from twig.storage.objects import blob_address


def recorded_commits(repo: Repository) -> set:
    return {a for b in repo.state.branches.values() for a in b.history}


class TestInitialize:
    """Test the root commit."""

    def test_root_commit(self, repo: Repository) -> None:
        root = repo.head_commit()

        assert root.message == INITIAL_COMMIT_MESSAGE
        assert root.timestamp == INITIAL_COMMIT_TIMESTAMP
        assert root.parents == ()
        assert root.files == {}
        assert repo.state.current_branch == "master"
        assert repo.state.branches["master"].history == [root.address]

    def test_root_commit_is_identical_across_repositories(
        self, repo: Repository, tmp_path: Path
    ) -> None:
        other_root = tmp_path / "other"
        other_root.mkdir()
        other = Repository.init(other_root)

        assert other.head_commit().address == repo.head_commit().address


class TestCommit:
    """Test commit formation."""

    def test_commit_after_init_fails(self, repo: Repository) -> None:
        head = repo.state.head
        with pytest.raises(PreconditionError, match="No changes added to the commit."):
            repo.commit("m")
        assert repo.state.head == head
        assert len(list(repo.store.iter_commits())) == 1

    def test_commit_empty_message(self, repo: Repository, workspace: Path) -> None:
        (workspace / "a.txt").write_text("a")
        repo.add("a.txt")

        with pytest.raises(PreconditionError, match="Please enter a commit message."):
            repo.commit("")
        assert "a.txt" in repo.state.staged_additions

    def test_commit_builds_file_mapping(self, repo: Repository, workspace: Path, commit_file) -> None:
        first = commit_file("a.txt", "a")
        commit_file("b.txt", "b1")
        repo.rm("a.txt")
        (workspace / "b.txt").write_text("b2")
        repo.add("b.txt")
        (workspace / "c.txt").write_text("c")
        repo.add("c.txt")

        commit = repo.commit("Second round")

        assert commit.files == {
            "b.txt": blob_address(b"b2"),
            "c.txt": blob_address(b"c"),
        }
        assert first.files == {"a.txt": blob_address(b"a")}

    def test_commit_updates_state(self, repo: Repository, commit_file) -> None:
        root = repo.state.head
        commit = commit_file("a.txt", "a", "Add a")

        assert commit.parents == (root,)
        assert repo.state.head == commit.address
        assert repo.state.branch.history == [root, commit.address]
        assert repo.state.messages["Add a"] == [commit.address]
        assert not repo.state.has_staged_changes()
        assert repo.store.commit_exists(commit.address)

    def test_timestamps_come_from_clock(self, repo: Repository, commit_file) -> None:
        first = commit_file("a.txt", "a")
        second = commit_file("a.txt", "b")
        assert first.timestamp < second.timestamp
        assert first.timestamp.endswith("+00:00")


class TestLogAndFind:
    """Test history queries."""

    def test_log_follows_first_parents(self, repo: Repository, commit_file) -> None:
        first = commit_file("a.txt", "1", "one")
        second = commit_file("a.txt", "2", "two")

        messages = [c.message for c in repo.log()]
        assert messages == ["two", "one", INITIAL_COMMIT_MESSAGE]
        assert repo.log()[0].address == second.address
        assert repo.log()[1].address == first.address

    def test_global_log_includes_other_branches(self, repo: Repository, commit_file) -> None:
        repo.branch("dev")
        commit_file("a.txt", "master side", "on master")
        repo.checkout_branch("dev")
        commit_file("b.txt", "dev side", "on dev")

        messages = [c.message for c in repo.global_log()]
        assert messages == [INITIAL_COMMIT_MESSAGE, "on master", "on dev"]
        assert "on master" not in [c.message for c in repo.log()]

    def test_find(self, repo: Repository, commit_file) -> None:
        first = commit_file("a.txt", "1", "same")
        second = commit_file("a.txt", "2", "same")

        assert repo.find("same") == [first.address, second.address]

    def test_find_missing(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="Found no commit with that message."):
            repo.find("nope")


class TestBranches:
    """Test branch creation and removal."""

    def test_branch(self, repo: Repository, commit_file) -> None:
        commit_file("a.txt", "a")
        head = repo.state.head

        branch = repo.branch("dev")

        assert branch.head == head
        assert branch.history == repo.state.branches["master"].history
        assert branch.history is not repo.state.branches["master"].history
        assert repo.state.current_branch == "master"
        assert repo.state.split_points[head] == ["master", "dev"]

    def test_branch_history_is_independent(self, repo: Repository, commit_file) -> None:
        repo.branch("dev")
        commit = commit_file("a.txt", "a")

        assert repo.state.branches["master"].records(commit.address)
        assert not repo.state.branches["dev"].records(commit.address)

    def test_branch_exists(self, repo: Repository) -> None:
        repo.branch("dev")
        with pytest.raises(PreconditionError, match="A branch with that name already exists."):
            repo.branch("dev")

    def test_branch_empty_name(self, repo: Repository) -> None:
        with pytest.raises(InputError):
            repo.branch("")

    def test_remove_branch(self, repo: Repository) -> None:
        repo.branch("dev")
        repo.remove_branch("dev")

        assert "dev" not in repo.state.branches
        assert all("dev" not in names for names in repo.state.split_points.values())

    def test_remove_missing_branch(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="A branch with that name does not exist."):
            repo.remove_branch("ghost")

    def test_remove_current_branch(self, repo: Repository) -> None:
        with pytest.raises(PreconditionError, match="Cannot remove the current branch."):
            repo.remove_branch("master")


class TestCheckout:
    """Test branch and file checkout."""

    def test_checkout_branch_swaps_files(
        self, repo: Repository, workspace: Path, commit_file
    ) -> None:
        commit_file("shared.txt", "base")
        repo.branch("dev")
        commit_file("master_only.txt", "m")
        repo.checkout_branch("dev")

        assert repo.state.current_branch == "dev"
        assert not (workspace / "master_only.txt").exists()
        assert (workspace / "shared.txt").read_text() == "base"

        commit_file("shared.txt", "dev edit")
        repo.checkout_branch("master")

        assert (workspace / "shared.txt").read_text() == "base"
        assert (workspace / "master_only.txt").read_text() == "m"

    def test_checkout_branch_clears_staging(
        self, repo: Repository, workspace: Path, commit_file
    ) -> None:
        repo.branch("dev")
        commit_file("a.txt", "a")
        (workspace / "a.txt").write_text("edited")
        repo.add("a.txt")

        repo.checkout_branch("dev")

        assert not repo.state.has_staged_changes()

    def test_checkout_missing_branch(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="No such branch exists."):
            repo.checkout_branch("ghost")

    def test_checkout_current_branch(self, repo: Repository) -> None:
        with pytest.raises(PreconditionError, match="No need to checkout the current branch."):
            repo.checkout_branch("master")

    def test_checkout_untracked_in_the_way(
        self, repo: Repository, workspace: Path, commit_file
    ) -> None:
        repo.branch("dev")
        repo.checkout_branch("dev")
        commit_file("a.txt", "dev version")
        repo.checkout_branch("master")
        (workspace / "a.txt").write_text("untracked on master")

        with pytest.raises(WorkingTreeConflictError, match="untracked file in the way"):
            repo.checkout_branch("dev")

        assert repo.state.current_branch == "master"
        assert (workspace / "a.txt").read_text() == "untracked on master"

    def test_checkout_file_from_head(
        self, repo: Repository, workspace: Path, commit_file
    ) -> None:
        commit_file("a.txt", "committed")
        (workspace / "a.txt").write_text("scribbled")
        repo.add("a.txt")

        repo.checkout_file("a.txt")

        assert (workspace / "a.txt").read_text() == "committed"
        assert "a.txt" in repo.state.staged_additions

    def test_checkout_file_from_commit_prefix(
        self, repo: Repository, workspace: Path, commit_file
    ) -> None:
        old = commit_file("a.txt", "old")
        commit_file("a.txt", "new")

        repo.checkout_file("a.txt", old.address[:8])

        assert (workspace / "a.txt").read_text() == "old"

    def test_checkout_file_not_in_commit(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="File does not exist in that commit."):
            repo.checkout_file("a.txt")

    def test_checkout_file_unknown_commit(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="No commit with that id exists."):
            repo.checkout_file("a.txt", "0123456789abcdef")


class TestReset:
    """Test resetting to arbitrary commits."""

    def test_reset_restores_files(self, repo: Repository, workspace: Path, commit_file) -> None:
        first = commit_file("a.txt", "v1")
        commit_file("a.txt", "v2")
        commit_file("b.txt", "b")

        repo.reset(first.address[:10])

        assert repo.state.head == first.address
        assert (workspace / "a.txt").read_text() == "v1"
        assert not (workspace / "b.txt").exists()
        assert not repo.state.has_staged_changes()

    def test_reset_keeps_later_commits_recorded(self, repo: Repository, commit_file) -> None:
        first = commit_file("a.txt", "v1")
        second = commit_file("a.txt", "v2")

        repo.reset(first.address)

        assert second.address in recorded_commits(repo)
        assert [c.address for c in repo.log()][0] == first.address

    def test_reset_to_commit_on_other_branch(
        self, repo: Repository, workspace: Path, commit_file
    ) -> None:
        repo.branch("dev")
        repo.checkout_branch("dev")
        dev_commit = commit_file("d.txt", "dev")
        repo.checkout_branch("master")

        repo.reset(dev_commit.address)

        assert repo.state.current_branch == "dev"
        assert repo.state.branches["dev"].head == dev_commit.address
        assert (workspace / "d.txt").read_text() == "dev"

    def test_reset_moves_current_branch_when_recorded(
        self, repo: Repository, commit_file
    ) -> None:
        shared = commit_file("a.txt", "a")
        repo.branch("other")
        repo.checkout_branch("other")
        commit_file("b.txt", "b")

        repo.reset(shared.address)

        assert repo.state.current_branch == "other"
        assert repo.state.head == shared.address
        assert repo.state.branches["master"].head == shared.address

    def test_reset_prefers_master(self, repo: Repository, commit_file) -> None:
        repo.branch("solo")
        target = commit_file("a.txt", "a")
        repo.branch("alpha")
        repo.checkout_branch("solo")

        repo.reset(target.address)

        assert repo.state.current_branch == "master"
        assert repo.state.branches["alpha"].head == target.address
        assert repo.state.branches["solo"].head != target.address

    def test_reset_unknown_commit(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="No commit with that id exists."):
            repo.reset("0123456789abcdef")

    def test_reset_untracked_in_the_way(
        self, repo: Repository, workspace: Path, commit_file
    ) -> None:
        target = commit_file("a.txt", "tracked")
        repo.rm("a.txt")
        repo.commit("Remove a")
        (workspace / "a.txt").write_text("untracked now")

        with pytest.raises(WorkingTreeConflictError):
            repo.reset(target.address)
        assert (workspace / "a.txt").read_text() == "untracked now"

    def test_commits_recorded_after_branch_sequences(
        self, repo: Repository, commit_file
    ) -> None:
        made = [commit_file("a.txt", "1").address]
        repo.branch("dev")
        repo.checkout_branch("dev")
        made.append(commit_file("b.txt", "2").address)
        repo.checkout_branch("master")
        made.append(commit_file("c.txt", "3").address)
        repo.reset(made[0])
        repo.branch("tmp")
        repo.remove_branch("tmp")
        repo.reset(made[1])

        assert set(made) <= recorded_commits(repo)


class TestAncestry:
    """Test merge base search."""

    def test_linear_history(self, repo: Repository, commit_file) -> None:
        first = commit_file("a.txt", "1")
        second = commit_file("a.txt", "2")

        assert repo.graph.merge_base(first.address, second.address) == first.address
        assert repo.is_ancestor(first.address, second.address)
        assert not repo.is_ancestor(second.address, first.address)

    def test_diverged_branches(self, repo: Repository, commit_file) -> None:
        split = commit_file("a.txt", "base")
        repo.branch("dev")
        master_head = commit_file("a.txt", "master")
        repo.checkout_branch("dev")
        dev_head = commit_file("b.txt", "dev")

        base = repo.graph.merge_base(master_head.address, dev_head.address)
        assert base == split.address

    def test_base_moves_past_previous_merge(self, repo: Repository, commit_file) -> None:
        commit_file("f.txt", "1")
        repo.branch("dev")
        commit_file("g.txt", "m")
        repo.checkout_branch("dev")
        dev_first = commit_file("f.txt", "2")
        repo.checkout_branch("master")
        repo.merge("dev")

        base = repo.graph.merge_base(repo.state.head, dev_first.address)
        assert base == dev_first.address

    def test_criss_cross_picks_lowest_address(self, repo: Repository, commit_file) -> None:
        commit_file("f.txt", "base")
        repo.branch("dev")
        m1 = commit_file("m.txt", "m1")
        repo.branch("m_snapshot")
        repo.checkout_branch("dev")
        d1 = commit_file("d.txt", "d1")
        repo.branch("d_snapshot")
        repo.merge("m_snapshot")
        repo.checkout_branch("master")
        repo.merge("d_snapshot")

        master_head = repo.state.head
        dev_head = repo.state.branches["dev"].head
        base = repo.graph.merge_base(master_head, dev_head)

        assert base == min(m1.address, d1.address)
        assert base == repo.graph.merge_base(dev_head, master_head)
