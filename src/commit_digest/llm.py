import logging
import shutil
import subprocess
import textwrap

import openai
from openai import OpenAI

from .config import Config

LOG = logging.getLogger("commit_digest.llm")

MAX_DIFF_CHARS = 60_000

SUMMARY_TEMPLATE = (
    "Summarize the following git commit messages from the last {days} days: {commits}. "
    "Include branch names next to summary bullet points."
)

RELEASE_NOTES_TEMPLATE = textwrap.dedent("""\
    Generate a well-formatted release notes document based on the following Git merge commit messages. Categorize the changes into Features, Bug Fixes, and Improvements if applicable. Use Markdown formatting.

    ### Commit Messages:
    {commits}

    ### Release Notes:
""")

PR_TEMPLATE = textwrap.dedent("""\
    Summarize the following git diff for branch '{branch}':

    {diff}

    Please provide a concise summary of the changes, including:
    1. Files modified
    2. Key additions or removals
    3. Potential impact on the codebase
    4. bad coding practices (security, architecture, modularity)""")


class SummarizerError(RuntimeError):
    pass


def build_summary_prompt(days: int, commits: str) -> str:
    return SUMMARY_TEMPLATE.format(days=days, commits=commits)


def build_release_notes_prompt(commits: str) -> str:
    return RELEASE_NOTES_TEMPLATE.format(commits=commits)


def build_pr_prompt(branch: str, diff: str) -> str:
    # Truncate very large diffs to stay within context limits
    if len(diff) > MAX_DIFF_CHARS:
        diff = diff[:MAX_DIFF_CHARS] + "\n\n... [diff truncated] ..."
    return PR_TEMPLATE.format(branch=branch, diff=diff)


class Summarizer:
    """Text in, text out. Subclasses implement :meth:`complete`."""

    name = "summarizer"

    def ensure_available(self) -> None:
        """Raise SummarizerError if the backend cannot be used at all."""

    def complete(self, prompt: str) -> str:
        raise NotImplementedError

    def summarize(self, prompt: str, what: str = "summary") -> str:
        LOG.debug("sending %d chars to %s", len(prompt), self.name)
        text = (self.complete(prompt) or "").strip()
        if not text or text == "null":
            raise SummarizerError(f"Failed to retrieve {what} from the LLM.")
        return text


class LlmCommandSummarizer(Summarizer):
    """Shells out to an ``llm``-style CLI: ``<command> -m <model> <prompt>``."""

    name = "llm command"

    def __init__(self, command: str = "llm", model: str = "claude-3.5-sonnet"):
        self.command = command
        self.model = model

    def ensure_available(self) -> None:
        if shutil.which(self.command) is None:
            raise SummarizerError(
                f"LLM command '{self.command}' not found. "
                "Please ensure it is installed and in your PATH."
            )

    def complete(self, prompt: str) -> str:
        args = [self.command, "-m", self.model, prompt]
        LOG.debug("running %s -m %s <prompt>", self.command, self.model)
        try:
            result = subprocess.run(args, capture_output=True, text=True)
        except FileNotFoundError:
            raise SummarizerError(f"LLM command '{self.command}' not found.")
        if result.returncode != 0:
            raise SummarizerError(
                f"{self.command} exited with status {result.returncode}:\n{result.stderr.strip()}"
            )
        return result.stdout


class OpenRouterSummarizer(Summarizer):
    """Chat completion against OpenRouter through the OpenAI client."""

    name = "openrouter"

    def __init__(self, client, model: str, max_tokens: int = 10000):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def complete(self, prompt: str) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.OpenAIError as e:
            raise SummarizerError(f"Error calling AI API: {e}") from e
        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""


def get_openrouter_client(config: Config) -> OpenAI:
    return OpenAI(
        base_url=config.openrouter_base_url,
        api_key=config.openrouter_key,
    )


def get_summarizer(config: Config, model: str | None = None) -> Summarizer:
    """Build the summarizer for ``config.backend``; *model* overrides the configured one."""
    if config.backend == "openrouter":
        return OpenRouterSummarizer(get_openrouter_client(config), model or config.openrouter_model)
    return LlmCommandSummarizer(config.llm_command, model or config.model)
