import os
import subprocess

import pytest

from commit_digest.llm import Summarizer

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test Author",
    "GIT_AUTHOR_EMAIL": "author@example.com",
    "GIT_COMMITTER_NAME": "Test Author",
    "GIT_COMMITTER_EMAIL": "author@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def git(repo, *args, env=None):
    full_env = dict(os.environ, **GIT_ENV, **(env or {}))
    result = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", "-c", "tag.gpgsign=false", *args],
        cwd=repo, env=full_env, capture_output=True, text=True, check=True,
    )
    return result.stdout.strip()


def commit_file(repo, name, content, message, env=None):
    (repo / name).write_text(content)
    git(repo, "add", name, env=env)
    git(repo, "commit", "-m", message, env=env)


def merge_feature(repo, branch, filename, message):
    git(repo, "checkout", "-q", "-b", branch)
    commit_file(repo, filename, f"{branch}\n", f"add {filename}")
    git(repo, "checkout", "-q", "main")
    git(repo, "merge", "-q", "--no-ff", branch, "-m", message)


class StubSummarizer(Summarizer):
    name = "stub"

    def __init__(self, reply="## Features\n- stub notes"):
        self.reply = reply
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        return self.reply


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("COMMIT_DIGEST_") or key.startswith("OPENROUTER_"):
            monkeypatch.delenv(key)


@pytest.fixture
def stub():
    return StubSummarizer()


@pytest.fixture
def repo(tmp_path):
    """main: initial, merge a (v1.0.0), merge b (v1.1.0), merge c; feature/d unmerged."""
    path = tmp_path / "repo"
    path.mkdir()
    git(path, "init", "-q", "-b", "main")
    commit_file(path, "README.md", "hello\n", "initial commit")

    merge_feature(path, "feature/a", "a.txt", "Merge feature/a: add search")
    git(path, "tag", "-a", "v1.0.0", "-m", "release 1.0.0")

    merge_feature(path, "feature/b", "b.txt", "Merge feature/b: add login")
    git(path, "tag", "v1.1.0")

    merge_feature(path, "feature/c", "c.txt", "Merge feature/c: fix crash on startup")

    git(path, "checkout", "-q", "-b", "feature/d")
    commit_file(path, "d.py", "print('d')\n", "add d module")
    git(path, "checkout", "-q", "main")
    return path


@pytest.fixture
def old_repo(tmp_path):
    """A repository whose only commit is decades old."""
    path = tmp_path / "old"
    path.mkdir()
    dated = {
        "GIT_AUTHOR_DATE": "2001-01-01T12:00:00",
        "GIT_COMMITTER_DATE": "2001-01-01T12:00:00",
    }
    git(path, "init", "-q", "-b", "main")
    commit_file(path, "README.md", "old\n", "ancient commit", env=dated)
    return path
