import logging
import re
import subprocess

from .models import CommitRange, Selection
from .ui import status

LOG = logging.getLogger("commit_digest.git")

SUBJECT_FORMAT = "--pretty=format:- %s"
SOURCE_FORMAT = "--pretty=format:- %s [%S]"


class GitError(RuntimeError):
    pass


def run_git(args: list[str], cwd: str | None = None) -> str:
    LOG.debug("git %s (cwd=%s)", " ".join(args), cwd or ".")
    try:
        result = subprocess.run(
            ["git"] + args,
            capture_output=True, text=True, cwd=cwd,
            timeout=120,
        )
    except FileNotFoundError:
        raise GitError("git executable not found. Please ensure it is installed and in your PATH.")
    except subprocess.TimeoutExpired:
        raise GitError(f"git {' '.join(args)} timed out.")
    if result.returncode != 0:
        raise GitError(f"git {' '.join(args)} failed:\n{result.stderr.strip()}")
    return result.stdout.strip()


def _ref_exists(ref: str, cwd: str | None = None) -> bool:
    try:
        run_git(["show-ref", "--verify", "--quiet", ref], cwd=cwd)
    except GitError:
        return False
    return True


def has_remote(remote: str, cwd: str | None = None) -> bool:
    return remote in run_git(["remote"], cwd=cwd).split()


def fetch(remote: str, branch: str | None = None, tags: bool = False, cwd: str | None = None) -> None:
    args = ["fetch", remote]
    if branch:
        args.append(branch)
    if tags:
        args.append("--tags")
    run_git(args, cwd=cwd)


def resolve_branch(branch: str, remote: str | None = None, cwd: str | None = None,
                   prefer_local: bool = False) -> str:
    """Return the ref to read *branch* from.

    The remote-tracking copy wins unless *prefer_local* is set, in which case
    it is only used when there is no local branch of that name.
    """
    if prefer_local and _ref_exists(f"refs/heads/{branch}", cwd=cwd):
        return branch
    if remote and _ref_exists(f"refs/remotes/{remote}/{branch}", cwd=cwd):
        return f"{remote}/{branch}"
    if _ref_exists(f"refs/heads/{branch}", cwd=cwd):
        return branch
    raise GitError(f"Branch '{branch}' does not exist.")


def tag_exists(tag: str, cwd: str | None = None) -> bool:
    return _ref_exists(f"refs/tags/{tag}", cwd=cwd)


def latest_tag(ref: str, cwd: str | None = None) -> str | None:
    """Most recent tag reachable from *ref*, or None."""
    try:
        return run_git(["describe", "--tags", "--abbrev=0", ref], cwd=cwd) or None
    except GitError:
        return None


def root_commit(ref: str, cwd: str | None = None) -> str:
    roots = run_git(["rev-list", "--max-parents=0", ref], cwd=cwd).splitlines()
    return roots[-1]


def tag_range(ref: str, start_tag: str | None, end_tag: str | None,
              cwd: str | None = None) -> tuple[str, str]:
    """Work out the (start, end) pair for a tag based selection on *ref*."""
    if end_tag:
        if not tag_exists(end_tag, cwd=cwd):
            raise GitError(f"End tag '{end_tag}' does not exist.")
        status(f"Using specified end tag '{end_tag}'.")
        end = end_tag
    else:
        status(f"Determining the latest tag on '{ref}'...")
        end = latest_tag(ref, cwd=cwd)
        if end is None:
            status(f"No tags found on '{ref}'. Using the branch tip as the end reference.")
            end = ref
        else:
            status(f"Latest tag on '{ref}' is '{end}'.")

    if start_tag:
        if not tag_exists(start_tag, cwd=cwd):
            raise GitError(f"Start tag '{start_tag}' does not exist.")
        status(f"Using specified start tag '{start_tag}' as the reference.")
        return start_tag, end

    status(f"Determining the previous tag before '{end}'...")
    start = latest_tag(f"{end}^", cwd=cwd)
    if start is None:
        status(f"No previous tags found before '{end}'. Using the initial commit as the reference.")
        start = root_commit(ref, cwd=cwd)
    else:
        status(f"Previous tag is '{start}'.")
    return start, end


def _strip_source(text: str) -> str:
    # %S prints the full ref name; keep just the branch part
    return re.sub(r"\[refs/(?:heads|remotes)/", "[", text)


def commits_in_last_days(days: int, ref: str | None = None, cwd: str | None = None) -> CommitRange:
    since = f"--since={days} days ago"
    if ref:
        text = run_git(["log", ref, since, SUBJECT_FORMAT], cwd=cwd)
        where = f"on '{ref}'"
    else:
        text = _strip_source(run_git(["log", "--branches", "--remotes", "--source", since, SOURCE_FORMAT], cwd=cwd))
        where = "on all branches"
    return CommitRange(description=f"in the last {days} days {where}", text=text)


def merges_between(start: str, end: str, cwd: str | None = None) -> CommitRange:
    text = run_git(["log", f"{start}..{end}", "--merges", SUBJECT_FORMAT], cwd=cwd)
    return CommitRange(description=f"from '{start}' to '{end}'", text=text)


def merges_by_date(ref: str, start_date: str | None, end_date: str | None,
                   cwd: str | None = None) -> CommitRange:
    args = ["log", ref, "--merges"]
    if start_date:
        args.append(f"--since={start_date}")
    if end_date:
        args.append(f"--until={end_date}")
    args.append(SUBJECT_FORMAT)

    if start_date and end_date:
        desc = f"from '{start_date}' to '{end_date}'"
    elif start_date:
        desc = f"since '{start_date}'"
    else:
        desc = f"up to '{end_date}'"
    return CommitRange(description=desc, text=run_git(args, cwd=cwd))


def recent_merges(ref: str, n: int, cwd: str | None = None) -> CommitRange:
    text = run_git(["log", ref, "--merges", f"-{n}", SUBJECT_FORMAT], cwd=cwd)
    return CommitRange(description=f"in the last {n} merges on '{ref}'", text=text)


def collect_merges(sel: Selection, ref: str, cwd: str | None = None) -> CommitRange:
    """Dispatch a release-notes selection to the matching git query."""
    if sel.method == "tag":
        start, end = tag_range(ref, sel.start_tag, sel.end_tag, cwd=cwd)
        status(f"Retrieving merge commits from '{start}' to '{end}'...")
        return merges_between(start, end, cwd=cwd)
    if sel.method == "date":
        status(f"Retrieving merge commits on '{ref}' based on date range...")
        return merges_by_date(ref, sel.start_date, sel.end_date, cwd=cwd)
    if sel.method == "count":
        status(f"Retrieving the last {sel.number} merge commits on '{ref}'...")
        return recent_merges(ref, sel.number, cwd=cwd)
    raise ValueError(f"unknown selection method: {sel.method}")


def branch_diff(base_ref: str, ref: str, cwd: str | None = None) -> str:
    """Changes *ref* introduces since it forked from *base_ref*."""
    return run_git(["diff", f"{base_ref}...{ref}"], cwd=cwd)
