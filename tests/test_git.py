"""Tests against real throwaway git repositories."""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from git_smart_prune.engine import CleanupEngine
from git_smart_prune.exceptions import (
    BranchDeletionError,
    GitCommandError,
    RemoteNotFoundError,
    SyncConflictError,
    SyncError,
)
from git_smart_prune.git import GitClient, parse_branch_list
from git_smart_prune.models import ProcessingState, RunConfig


def git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(["git", *args], cwd=str(cwd), capture_output=True, text=True, check=True)
    return proc.stdout


def commit_file(repo: Path, name: str, content: str) -> None:
    (repo / name).write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-m", f"add {name}")


class ParseBranchListTests(unittest.TestCase):
    def test_strips_markers_and_excludes_main(self) -> None:
        output = "  feat-a\n* main\n+ wt-branch\n\n  (HEAD detached at 1234abc)\n"
        self.assertEqual(parse_branch_list(output, exclude="main"), ["feat-a", "wt-branch"])


class PullExitCodeTests(unittest.TestCase):
    def pull_with(self, returncode: int, stderr: str = "") -> Exception | None:
        proc = subprocess.CompletedProcess(["git", "pull"], returncode, stdout="", stderr=stderr)
        with mock.patch("git_smart_prune.git.run_git", return_value=proc) as run:
            try:
                GitClient().pull(Path("/work/proj"))
            except SyncError as exc:
                return exc
            finally:
                self.assertEqual(run.call_args.args[0], ["pull"])
        return None

    def test_success_raises_nothing(self) -> None:
        self.assertIsNone(self.pull_with(0))

    def test_exit_one_is_remote_not_found(self) -> None:
        error = self.pull_with(1, "fatal: no remote")
        self.assertIs(type(error), RemoteNotFoundError)
        self.assertEqual(str(error), "remote repository not found")

    def test_exit_128_is_conflict(self) -> None:
        error = self.pull_with(128, "fatal: refusing to merge")
        self.assertIs(type(error), SyncConflictError)
        self.assertEqual(str(error), "there is a conflict between remote and local changes")

    def test_other_exit_codes_are_plain_sync_errors(self) -> None:
        error = self.pull_with(2, "error: cannot lock ref")
        self.assertIs(type(error), SyncError)
        self.assertEqual(str(error), "failed to pull latest changes: error: cannot lock ref")

    def test_other_exit_code_without_output_reports_status(self) -> None:
        error = self.pull_with(2)
        self.assertEqual(str(error), "failed to pull latest changes: exit status 2")


@unittest.skipIf(shutil.which("git") is None, "git is not installed")
class GitClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.tmp = Path(self._tmp.name).absolute()
        env = mock.patch.dict(
            os.environ,
            {
                "HOME": str(self.tmp),
                "GIT_CONFIG_NOSYSTEM": "1",
                "GIT_AUTHOR_NAME": "Test",
                "GIT_AUTHOR_EMAIL": "test@example.com",
                "GIT_COMMITTER_NAME": "Test",
                "GIT_COMMITTER_EMAIL": "test@example.com",
            },
        )
        env.start()
        self.addCleanup(env.stop)
        self.workspace = self.tmp / "workspace"
        self.workspace.mkdir()
        self.project = self._build_project()
        self.client = GitClient()

    def _build_project(self) -> Path:
        git(self.tmp, "init", "--bare", "origin.git")
        git(self.workspace, "clone", str(self.tmp / "origin.git"), "proj")
        project = self.workspace / "proj"
        git(project, "checkout", "-b", "main")
        commit_file(project, "README.md", "hello\n")
        git(project, "push", "-u", "origin", "main")

        git(project, "checkout", "-b", "feat-a")
        commit_file(project, "a.txt", "a\n")
        git(project, "checkout", "main")
        git(project, "merge", "--no-ff", "feat-a", "-m", "merge feat-a")

        git(project, "checkout", "-b", "feat-b")
        commit_file(project, "b.txt", "b\n")
        git(project, "checkout", "main")

        git(project, "checkout", "-b", "feat-c")
        commit_file(project, "c1.txt", "c1\n")
        commit_file(project, "c2.txt", "c2\n")
        git(project, "checkout", "main")
        git(project, "merge", "--squash", "feat-c")
        git(project, "commit", "-m", "squash feat-c")
        git(project, "push", "origin", "main")
        return project

    def _branches(self, repo: Path) -> list[str]:
        output = git(repo, "for-each-ref", "refs/heads/", "--format=%(refname:short)")
        return [line for line in output.splitlines() if line]

    def test_is_repository(self) -> None:
        plain = self.workspace / "plain"
        plain.mkdir()
        self.assertTrue(self.client.is_repository(self.project))
        self.assertFalse(self.client.is_repository(plain))
        self.assertFalse(self.client.is_repository(self.workspace / "missing"))

    def test_checkout_unknown_branch_raises(self) -> None:
        with self.assertRaises(GitCommandError):
            self.client.checkout(self.project, "master")

    def test_merged_branches_exclude_main(self) -> None:
        self.assertEqual(self.client.list_merged_branches(self.project, "main"), ["feat-a"])

    def test_squash_merged_branches_are_disjoint_from_merged(self) -> None:
        merged = self.client.list_merged_branches(self.project, "main")
        squashed = self.client.list_squash_merged_branches(self.project, "main", merged)

        self.assertEqual(squashed, ["feat-c"])
        self.assertFalse(set(merged) & set(squashed))

    def test_pull_without_remote_raises_sync_error(self) -> None:
        lonely = self.workspace / "lonely"
        lonely.mkdir()
        git(lonely, "init")
        git(lonely, "checkout", "-b", "main")
        commit_file(lonely, "x.txt", "x\n")
        with self.assertRaises(SyncError):
            self.client.pull(lonely)

    def test_unmerged_branch_needs_force(self) -> None:
        with self.assertRaises(BranchDeletionError):
            self.client.delete_branch(self.project, "feat-b")
        self.client.delete_branch(self.project, "feat-b", force=True)
        self.assertNotIn("feat-b", self._branches(self.project))

    def test_cleanup_of_single_repository_root(self) -> None:
        config = RunConfig(root_path=self.project)
        final = CleanupEngine(config, self.client, poll_interval=0.01).run()

        self.assertEqual([repo.name for repo in final.repositories], ["proj"])
        record = final.records[0]
        self.assertIs(record.state, ProcessingState.COMPLETED)
        self.assertEqual(record.deleted_branches, ("feat-a",))
        self.assertEqual(self._branches(self.project), ["feat-b", "feat-c", "main"])

    def test_cleanup_with_squashed_branches(self) -> None:
        config = RunConfig(root_path=self.workspace, include_squashed=True, protected_branches=frozenset({"feat-a"}))
        final = CleanupEngine(config, self.client, poll_interval=0.01).run()

        record = final.records[0]
        self.assertIs(record.state, ProcessingState.COMPLETED)
        self.assertEqual(record.deleted_branches, ("feat-c",))
        self.assertEqual(self._branches(self.project), ["feat-a", "feat-b", "main"])

    def test_missing_main_branch_fails_repository(self) -> None:
        trunk = self.workspace / "trunk-only"
        trunk.mkdir()
        git(trunk, "init")
        git(trunk, "checkout", "-b", "trunk")
        commit_file(trunk, "x.txt", "x\n")

        final = CleanupEngine(RunConfig(root_path=self.workspace, concurrency=2), self.client, poll_interval=0.01).run()

        states = {repo.name: record for repo, record in final.entries()}
        self.assertIs(states["trunk-only"].state, ProcessingState.FAILED)
        self.assertEqual(str(states["trunk-only"].errors[0]), "the main branch has not been checked out locally")
        self.assertIs(states["proj"].state, ProcessingState.COMPLETED)


if __name__ == "__main__":
    unittest.main()
