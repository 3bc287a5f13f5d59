from typing import Dict, Optional


class MemorySecrets:
    """In-memory secret store used when no secret backend is configured."""

    renewable = False

    def __init__(self, secrets: Optional[Dict[str, Dict[str, str]]] = None):
        """
        Initialize memory store.

        Args:
            secrets: Optional mapping of path to pre-seeded secret set
        """
        self._secrets = {path.strip("/"): dict(values) for path, values in (secrets or {}).items()}

    async def get_secrets_for_target(self, path: str) -> Dict[str, str]:
        return dict(self._secrets.get(path.strip("/"), {}))

    async def close(self) -> None:
        pass
