import os
import sys
import logging
from dataclasses import dataclass

import dotenv

LOG = logging.getLogger("commit_digest")

BACKENDS = ("llm", "openrouter")


@dataclass
class Config:
    backend: str = "llm"
    llm_command: str = "llm"
    model: str = "claude-3.5-sonnet"
    remote: str = "origin"
    release_branch: str = "develop"
    base_branch: str = "develop"
    openrouter_key: str | None = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "google/gemini-3-flash-preview"


def load_config() -> Config:
    dotenv.load_dotenv(dotenv.find_dotenv(usecwd=True))

    return Config(
        backend=os.getenv("COMMIT_DIGEST_BACKEND", "llm"),
        llm_command=os.getenv("COMMIT_DIGEST_LLM_COMMAND", "llm"),
        model=os.getenv("COMMIT_DIGEST_MODEL", "claude-3.5-sonnet"),
        remote=os.getenv("COMMIT_DIGEST_REMOTE", "origin"),
        release_branch=os.getenv("COMMIT_DIGEST_RELEASE_BRANCH", "develop"),
        base_branch=os.getenv("COMMIT_DIGEST_BASE_BRANCH", "develop"),
        openrouter_key=os.getenv("OPENROUTER_API_KEY"),
        openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"),
        openrouter_model=os.getenv("OPENROUTER_MODEL", "google/gemini-3-flash-preview"),
    )


def setup_logging(verbose: bool = False) -> None:
    """Enable debug logging when COMMIT_DIGEST_DEBUG=1 or --verbose."""
    level = logging.DEBUG if (verbose or os.getenv("COMMIT_DIGEST_DEBUG")) else logging.WARNING
    LOG.setLevel(level)
    if level == logging.DEBUG and not LOG.handlers:
        h = logging.StreamHandler(sys.stderr)
        h.setLevel(logging.DEBUG)
        h.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        LOG.addHandler(h)


def validate_config(config: Config) -> str | None:
    """Return an error message when *config* cannot drive the chosen backend."""
    if config.backend not in BACKENDS:
        return f"Unknown backend '{config.backend}'. Choose 'llm' or 'openrouter'."
    if config.backend == "openrouter" and not config.openrouter_key:
        return ("OPENROUTER_API_KEY environment variable is not set.\n"
                "  Create a .env file with OPENROUTER_API_KEY=sk-or-...")
    return None
