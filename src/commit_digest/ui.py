import sys

# ──────────────────────────────────────────────
# ANSI helpers
# ──────────────────────────────────────────────
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
CYAN = "\033[96m"
RESET = "\033[0m"
RULE = "━" * 48


def styled(text: str, *codes: str) -> str:
    if not sys.stderr.isatty():
        return text
    return "".join(codes) + text + RESET


# Progress goes to stderr so stdout only ever carries the generated text.
def status(text: str) -> None:
    print(styled(text, DIM), file=sys.stderr)


def notice(text: str) -> None:
    print(styled(text, YELLOW), file=sys.stderr)


def success(text: str) -> None:
    print(styled(text, GREEN), file=sys.stderr)


def error(text: str) -> None:
    print(styled("Error: ", RED, BOLD) + text, file=sys.stderr)


def print_result(heading: str, body: str) -> None:
    print(heading)
    print(body)
