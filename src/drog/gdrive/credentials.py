"""On-disk cache for the OAuth2 credential.

The credential lives in a single JSON file, by default
~/.credentials/drog-drive.json. The directory is created owner-only (0700)
and the file is written owner-only (0600).

Example:
    from drog.gdrive.credentials import CredentialStore

    store = CredentialStore(Path("~/.credentials/drog-drive.json").expanduser())
    credential = store.load()
    if credential is None:
        ...  # run the authorization exchange, then store.save(credential)
"""

import os
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from drog.models import Credential

logger = structlog.get_logger()

DIRECTORY_MODE = 0o700
FILE_MODE = 0o600


class CredentialStore:
    """Loads and saves a Credential at a fixed path.

    Attributes:
        path: Location of the credential cache file.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Credential]:
        """Read the cached credential.

        Returns:
            The credential, or None when the file is absent or its content
            is not a valid credential. A corrupt cache, or one holding
            neither an access nor a refresh token, counts as absent.
        """
        if not self.path.exists():
            logger.debug("credential_cache_missing", path=str(self.path))
            return None

        try:
            text = self.path.read_text(encoding="utf-8")
            credential = Credential.model_validate_json(text)
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.warning("credential_cache_invalid", path=str(self.path), error=str(e))
            return None

        if not credential.usable:
            logger.warning("credential_cache_unusable", path=str(self.path))
            return None
        return credential

    def save(self, credential: Credential) -> None:
        """Write the credential, replacing any existing cache file.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        directory = self.path.parent
        if not directory.exists():
            directory.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
            os.chmod(directory, DIRECTORY_MODE)

        payload = credential.model_dump_json(indent=2)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        # O_CREAT only applies the mode to new files
        os.chmod(self.path, FILE_MODE)

        logger.info("credential_saved", path=str(self.path))
