import argparse
import logging
import os
import sys
import textwrap
from pathlib import Path

from .config import Config, load_config, setup_logging, validate_config, BACKENDS
from .git_ops import (
    branch_diff, collect_merges, commits_in_last_days, fetch,
    has_remote, resolve_branch,
)
from .llm import (
    Summarizer, build_pr_prompt, build_release_notes_prompt, build_summary_prompt,
    get_summarizer,
)
from .models import METHODS, Selection, validate_selection
from .ui import error, notice, print_result, status, success

LOG = logging.getLogger("commit_digest")

DEFAULT_DAYS = 7
DEFAULT_MERGE_COUNT = 20
DEFAULT_RELEASE_NOTES = "RELEASE_NOTES.md"


class UsageParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on bad usage."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _emit(text: str, output: str | None, heading: str | None = None) -> None:
    if output and output != "-":
        status(f"Writing output to '{output}'...")
        Path(output).write_text(text + "\n", encoding="utf-8")
        success(f"Output has been successfully generated in '{output}'.")
        return
    if heading:
        print_result(heading, text)
    else:
        print(text)


def _maybe_fetch(args, config: Config, branch: str | None = None, tags: bool = False) -> None:
    if args.no_fetch:
        return
    if not has_remote(config.remote, cwd=args.repo):
        LOG.debug("no remote named %r, skipping fetch", config.remote)
        return
    target = f"branch '{branch}'" if branch else f"'{config.remote}'"
    status(f"Fetching the latest commits{' and tags' if tags else ''} from {target}...")
    fetch(config.remote, branch, tags=tags, cwd=args.repo)


def selection_from_args(args) -> Selection:
    if args.command == "summary":
        days = args.days_opt if args.days_opt is not None else args.days
        return Selection(method="days", branch=args.branch,
                         days=DEFAULT_DAYS if days is None else days)
    if args.command == "release-notes":
        number = args.number
        if args.method == "count" and number is None:
            number = DEFAULT_MERGE_COUNT
        return Selection(
            method=args.method or "",
            branch=args.branch,
            start_tag=args.start_tag,
            end_tag=args.end_tag,
            start_date=args.start_date,
            end_date=args.end_date,
            number=number,
        )
    return Selection(method="diff", branch=args.pr_branch)


def cmd_summary(args, config: Config, summarizer: Summarizer, sel: Selection) -> int:
    ref = None
    if sel.branch:
        ref = resolve_branch(sel.branch, config.remote, cwd=args.repo, prefer_local=True)
    commits = commits_in_last_days(sel.days, ref, cwd=args.repo)

    if commits.empty:
        notice(f"No commits in the last {sel.days} days.")
        return 0

    status(f"Found {commits.count} commits {commits.description}. Sending to the LLM…")
    summary = summarizer.summarize(build_summary_prompt(sel.days, commits.text), "summary")
    _emit(summary, args.output, f"Summary of git commits from the last {sel.days} days:")
    return 0


def cmd_release_notes(args, config: Config, summarizer: Summarizer, sel: Selection) -> int:
    branch = sel.branch or config.release_branch
    _maybe_fetch(args, config, branch, tags=True)
    ref = resolve_branch(branch, config.remote, cwd=args.repo)
    merges = collect_merges(sel, ref, cwd=args.repo)

    if merges.empty:
        notice(f"No merge commits found on branch '{branch}' with the specified criteria.")
        return 0

    status(f"Sending {merges.count} commit messages {merges.description} to the LLM for processing…")
    notes = summarizer.summarize(build_release_notes_prompt(merges.text), "release notes")
    _emit(notes, args.output or DEFAULT_RELEASE_NOTES)
    return 0


def cmd_pr_summary(args, config: Config, summarizer: Summarizer, sel: Selection) -> int:
    base = args.base or config.base_branch
    _maybe_fetch(args, config)
    base_ref = resolve_branch(base, config.remote, cwd=args.repo)
    ref = resolve_branch(sel.branch, config.remote, cwd=args.repo)

    diff = branch_diff(base_ref, ref, cwd=args.repo)
    if not diff:
        error(f"No diff found for branch '{sel.branch}'")
        return 1

    status(f"Sending the diff of '{ref}' against '{base_ref}' to the LLM…")
    summary = summarizer.summarize(build_pr_prompt(sel.branch, diff), "summary")
    _emit(summary, args.output, f"Summary of branch '{sel.branch}' based on git diff:")
    return 0


COMMANDS = {
    "summary": cmd_summary,
    "release-notes": cmd_release_notes,
    "pr-summary": cmd_pr_summary,
}


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-o", "--output", default=None,
                        help="Write the result to FILE ('-' for stdout)")
    common.add_argument("--model", default=None,
                        help="Model passed to the LLM backend")
    common.add_argument("--backend", choices=BACKENDS, default=None,
                        help="LLM backend: 'llm' command or 'openrouter' API")
    common.add_argument("--remote", default=None,
                        help="Git remote to fetch from (default: origin)")
    common.add_argument("--no-fetch", action="store_true",
                        help="Do not run git fetch before reading history")
    common.add_argument("-C", "--repo", default=None, metavar="PATH",
                        help="Run as if started in PATH")
    common.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")

    parser = UsageParser(
        prog="commit-digest",
        description="Summarize git history and draft release notes with an LLM",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    p = sub.add_parser(
        "summary", parents=[common],
        help="Summarize commit messages from the last N days",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              %(prog)s                  Summarize the last 7 days on all branches
              %(prog)s 14               Summarize the last 14 days
              %(prog)s -b main --days 3 -o SUMMARY.md
        """),
    )
    p.add_argument("days", nargs="?", type=int, default=None,
                   help=f"Number of days to look back (default: {DEFAULT_DAYS})")
    p.add_argument("--days", dest="days_opt", type=int, default=None,
                   help="Same as the positional DAYS")
    p.add_argument("-b", "--branch", default=None,
                   help="Only read this branch (default: all branches)")
    p.set_defaults(subparser=p)

    p = sub.add_parser(
        "release-notes", parents=[common],
        help="Generate release notes from merge commits",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              %(prog)s -m tag -b main                        Previous tag to latest tag
              %(prog)s -m tag -s v1.0.0 -T v2.0.0 -b develop -o DEV_RELEASE_NOTES.md
              %(prog)s -m date -d 2023-01-01 -e 2023-12-31 -b main
              %(prog)s -m count -n 30 -o -                  Last 30 merges to stdout
        """),
    )
    p.add_argument("-m", "--method", default=None,
                   help=f"Selection method: {', '.join(METHODS)} (required)")
    p.add_argument("-s", "--start_tag", default=None, help="Starting tag (tag method)")
    p.add_argument("-T", "--end_tag", default=None, help="Ending tag (tag method)")
    p.add_argument("-d", "--start_date", default=None, help="Start date, e.g. 2023-01-01 (date method)")
    p.add_argument("-e", "--end_date", default=None, help="End date, e.g. 2023-12-31 (date method)")
    p.add_argument("-n", "--number", type=int, default=None,
                   help=f"Number of merge commits (count method, default: {DEFAULT_MERGE_COUNT})")
    p.add_argument("-b", "--branch", default=None,
                   help="Target branch (default: develop)")
    p.set_defaults(subparser=p)

    p = sub.add_parser(
        "pr-summary", parents=[common],
        help="Summarize the diff of a branch against its base",
    )
    p.add_argument("pr_branch", metavar="BRANCH", help="Branch whose changes to summarize")
    p.add_argument("--base", default=None, help="Base branch to diff against (default: develop)")
    p.set_defaults(subparser=p)

    return parser


def run(argv: list[str] | None = None, summarizer: Summarizer | None = None) -> int:
    config = load_config()
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.backend:
        config.backend = args.backend
    if args.remote:
        config.remote = args.remote

    # Option combinations are checked before touching git or the LLM.
    sel = selection_from_args(args)
    if sel.method != "diff":
        message = validate_selection(sel)
        if message:
            args.subparser.error(message)

    if args.repo and not os.path.isdir(args.repo):
        error(f"Repository path '{args.repo}' is not a directory.")
        return 1

    if summarizer is None:
        message = validate_config(config)
        if message:
            error(message)
            return 1

    try:
        if summarizer is None:
            summarizer = get_summarizer(config, args.model)
        summarizer.ensure_available()
        return COMMANDS[args.command](args, config, summarizer, sel)
    except (RuntimeError, OSError) as e:
        LOG.debug("command failed", exc_info=True)
        error(str(e))
        return 1


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
