"""On-disk cache of gadget descriptors.

One JSON document per environment, ``cache-<environment>.json`` in the cache
directory, shaped ``{"<runtime-version>": {"<image>": <descriptor>}}``.
Saving replaces the entry of one version and keeps the others. The file is
not locked; concurrent writers race and the last one wins.
"""

from pathlib import Path

import orjson
from pydantic import ValidationError

from ig_mcp_server.gadgets.types import GadgetDescriptor
from ig_mcp_server.telemetry import CACHE_FILE_REPLACED, get_logger

log = get_logger(__name__)

DEFAULT_CACHE_DIR = Path("~/.cache/ig-mcp-server")


class CacheError(Exception):
    """Raised when the cache file cannot be read or written."""

    pass


class CacheNotFoundError(CacheError):
    """Raised when no cache exists for the requested version."""

    pass


class MetadataCache:
    """Persistent (version, environment) → image → descriptor store."""

    def __init__(self, directory: Path | None = None) -> None:
        """Initialize cache.

        Args:
            directory: Cache directory. Defaults to ~/.cache/ig-mcp-server.
        """
        self.directory = (directory or DEFAULT_CACHE_DIR).expanduser()

    def path_for(self, environment: str) -> Path:
        """Cache file of an environment."""
        return self.directory / f"cache-{environment}.json"

    def load(self, version: str, environment: str) -> dict[str, GadgetDescriptor]:
        """Load the descriptors cached for a runtime version.

        Args:
            version: Runtime version (outer key).
            environment: Environment (selects the file).

        Returns:
            Mapping of image reference to descriptor.

        Raises:
            CacheNotFoundError: If there is no file or no entry for the version.
            CacheError: If the file cannot be read or decoded.
        """
        path = self.path_for(environment)
        document = self._read(path)
        if document is None:
            raise CacheNotFoundError(f"no cache file at {path}")

        entries = document.get(version)
        if not isinstance(entries, dict):
            raise CacheNotFoundError(f"no cache found for version {version!r}")

        try:
            return {
                image: GadgetDescriptor.model_validate(data) for image, data in entries.items()
            }
        except ValidationError as e:
            raise CacheError(f"decoding cache file {path}: {e}") from e

    def save(self, version: str, environment: str, infos: dict[str, GadgetDescriptor]) -> None:
        """Store the descriptors of a runtime version.

        Entries of other versions already in the file are kept. An unreadable
        existing file is replaced.

        Raises:
            CacheError: If the file cannot be written.
        """
        path = self.path_for(environment)
        try:
            document = self._read(path) or {}
        except CacheError as e:
            log.debug(CACHE_FILE_REPLACED, path=str(path), error=str(e))
            document = {}

        document[version] = {image: info.to_json_dict() for image, info in infos.items()}

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(orjson.dumps(document))
        except OSError as e:
            raise CacheError(f"writing cache file {path}: {e}") from e

    def _read(self, path: Path) -> dict | None:
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheError(f"opening cache file {path}: {e}") from e

        try:
            document = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise CacheError(f"decoding cache file {path}: {e}") from e
        if not isinstance(document, dict):
            raise CacheError(f"decoding cache file {path}: expected an object")
        return document
