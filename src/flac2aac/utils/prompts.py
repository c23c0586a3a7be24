"""
Interactive yes/no confirmation used for the post-run offers.
"""


def ask_yes_no(question: str) -> bool:
    """
    Ask a [y/N] question on the terminal.

    Only an explicit "y" or "yes" counts as agreement; end of input counts
    as no.
    """
    try:
        answer = input(f"{question} [y/N]: ")
    except EOFError:
        print()
        return False
    return answer.strip().lower() in ("y", "yes")


def ask_path(question: str) -> str:
    """Ask for a path; returns an empty string on end of input."""
    try:
        return input(f"{question}: ").strip()
    except EOFError:
        print()
        return ""
