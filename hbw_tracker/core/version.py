import subprocess
import logging

FALLBACK_VERSION = "0.1.0"

def get_version() -> str:
    """
    Get the current tracker version.

    Appends the git short commit hash when running from a checkout.
    Falls back to FALLBACK_VERSION if git is unavailable.
    """
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            timeout=1
        )
        git_hash = result.stdout.strip()
        return f"{FALLBACK_VERSION}+{git_hash}"
    except (OSError, subprocess.SubprocessError) as e:
        logging.debug(f"Could not get git version: {e}")
        return FALLBACK_VERSION
