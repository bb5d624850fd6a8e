"""Environment variable file loader.

Loads ``.env`` files from the working directory before settings are built,
so local overrides can be kept out of the shell profile.
"""

from pathlib import Path

from dotenv import load_dotenv

from ig_mcp_server.telemetry import ENV_FILES_LOADED, ENV_FILES_NOT_FOUND, get_logger

log = get_logger(__name__)


def load_env_files(base_dir: Path | None = None) -> list[str]:
    """Load .env files in priority order.

    Priority order (highest to lowest):
    1. `.env.local` (local overrides, gitignored)
    2. `.env` (base configuration)

    Explicit environment variables always win over values from the files.

    Args:
        base_dir: Directory to look in. Defaults to the current working directory.

    Returns:
        Names of the files that were loaded.
    """
    if base_dir is None:
        base_dir = Path.cwd()

    # .env.local is loaded first so that, with override=False, it wins over .env
    env_files = [base_dir / ".env.local", base_dir / ".env"]

    loaded_files = []
    for env_file in env_files:
        if env_file.exists():
            load_dotenv(env_file, override=False)
            loaded_files.append(env_file.name)

    if loaded_files:
        log.info(ENV_FILES_LOADED, files=loaded_files, base_dir=str(base_dir))
    else:
        log.debug(ENV_FILES_NOT_FOUND, base_dir=str(base_dir))
    return loaded_files
