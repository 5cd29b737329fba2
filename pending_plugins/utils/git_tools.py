# The MIT License (MIT)
# Copyright © 2025 Entrius
import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple, Union

MERGE_REFSPEC = '+refs/pull/*/merge:refs/remotes/origin/pr/*/merge'
MERGE_REF_PREFIX = 'refs/remotes/origin/pr/'


def git_available() -> bool:
    return shutil.which("git") is not None


def merge_ref(pr_number: int) -> str:
    """Local ref holding the merge commit GitHub prepared for a PR."""
    return f"{MERGE_REF_PREFIX}{pr_number}/merge"


class GitWorkspace:
    """Shallow clone of the plugin registry with every PR merge ref fetched.

    Once the refs are fetched, reading a PR's version of a file is a local
    ``git show`` with no further network calls.
    """

    def __init__(self, repo_dir: Union[str, Path], repo_url: str, branch: str):
        self.repo_dir = Path(repo_dir)
        self.repo_url = repo_url
        self.branch = branch
        self.logger = logging.getLogger(__name__)

    @property
    def baseline_ref(self) -> str:
        return f"origin/{self.branch}"

    def _run_git_command(self, cmd: List[str], cwd: Optional[Path] = None, log_errors: bool = True) -> Tuple[bool, str]:
        """Run a git command and return success status and output."""
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd or self.repo_dir,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=True,
            )
            return True, result.stdout
        except subprocess.CalledProcessError as e:
            if log_errors:
                self.logger.error(f"Git command failed: {' '.join(cmd)}, Error: {(e.stderr or '').strip()}")
            return False, e.stderr.strip() if e.stderr else str(e)
        except OSError as e:
            if log_errors:
                self.logger.error(f"Could not run git: {e}")
            return False, str(e)

    def is_cloned(self) -> bool:
        return (self.repo_dir / ".git").is_dir()

    def prepare(self) -> bool:
        """Clone the registry, or refresh the default branch of an existing clone."""
        if self.is_cloned():
            self.logger.info("Repository already exists, updating...")
            success, _ = self._run_git_command(["git", "fetch", "origin", self.branch, "--depth=1"])
            if not success:
                self.logger.warning(f"Could not refresh {self.branch}, using the existing clone")
            return True

        self.logger.info(f"Cloning {self.repo_url}...")
        self.repo_dir.parent.mkdir(parents=True, exist_ok=True)
        success, _ = self._run_git_command(
            ["git", "clone", "--depth=1", "--branch", self.branch, self.repo_url, str(self.repo_dir)],
            cwd=self.repo_dir.parent,
        )
        return success

    def fetch_merge_refs(self) -> Optional[int]:
        """Batch fetch every PR merge ref.

        Merge commits are rebuilt whenever a PR or its base moves, so the
        refspec force-updates refs left over in a reused clone.

        Returns:
            Number of merge refs available locally, or None if the fetch failed
        """
        self.logger.info("Batch fetching all PR merge refs...")
        success, _ = self._run_git_command(["git", "fetch", "origin", MERGE_REFSPEC])
        if not success:
            return None

        ok, output = self._run_git_command(["git", "show-ref"], log_errors=False)
        ref_count = sum(1 for line in output.splitlines() if MERGE_REF_PREFIX in line) if ok else 0
        self.logger.info(f"Fetched {ref_count} merge refs")
        return ref_count

    def has_ref(self, ref: str) -> bool:
        success, _ = self._run_git_command(["git", "show-ref", "--verify", "--quiet", ref], log_errors=False)
        return success

    def read_file(self, ref: str, path: str) -> Optional[str]:
        """Content of ``path`` at ``ref``, or None if it does not exist there."""
        success, output = self._run_git_command(["git", "show", f"{ref}:{path}"], log_errors=False)
        return output if success else None

    def read_baseline_file(self, path: str) -> Optional[str]:
        return self.read_file(self.baseline_ref, path)

    def read_merge_file(self, pr_number: int, path: str) -> Optional[str]:
        """Content of ``path`` at a PR's merge ref, or None when the PR has no merge ref."""
        ref = merge_ref(pr_number)
        if not self.has_ref(ref):
            return None
        return self.read_file(ref, path)
