"""
chiralnat/harness/rewriter.py

Temporary injection of a runtime value into the compose file.

The compose file ships with a literal placeholder (BOOTSTRAP_PEER_ID).
Before the peers start, the placeholder is replaced by the real bootstrap
peer ID; once they are started the file goes back to its template form.

The document is kept in memory for the whole run. Storage is written
exactly twice (after inject, after revert) and never re-read in between.
"""

import os
import shutil
import tempfile
import logging
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger("chiralnat.harness.rewriter")


def apply(doc: str, placeholder: str, value: str) -> str:
    """Replace every occurrence of placeholder with value."""
    return doc.replace(placeholder, value)


def restore(doc: str, value: str, placeholder: str) -> str:
    """Inverse of apply(): replace every occurrence of value with placeholder."""
    return doc.replace(value, placeholder)


def is_reversible(doc: str, placeholder: str, value: str) -> bool:
    """Check that restore(apply(doc, placeholder, value)) gives back doc."""
    if not value or not placeholder:
        return False
    return restore(apply(doc, placeholder, value), value, placeholder) == doc


def _write_durably(path: Path, content: str) -> None:
    # Atomic write: a failed write leaves the previous file in place
    data = content.encode("utf-8")
    with tempfile.NamedTemporaryFile(delete=False, dir=str(path.parent), prefix=f".{path.name}.") as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        except OSError:
            tmp.close()
            tmp_path.unlink()
            raise
    if path.exists():
        shutil.copymode(str(path), str(tmp_path))
    os.replace(str(tmp_path), str(path))


class ComposeTemplate:
    """
    A compose file holding a placeholder token.

    Usage:
        template = ComposeTemplate("docker-compose.nat-test.yml", "BOOTSTRAP_PEER_ID")
        template.inject(peer_id)
        ... start containers ...
        template.revert()
    """

    def __init__(self, path: Union[str, Path], placeholder: str = "BOOTSTRAP_PEER_ID"):
        self.path = Path(path)
        self.placeholder = placeholder
        self._original: Optional[str] = None
        self._rewritten: Optional[str] = None
        self._value: Optional[str] = None

    @property
    def injected(self) -> bool:
        return self._rewritten is not None

    def load(self) -> str:
        """Read the template once and keep it in memory."""
        if self._original is None:
            with open(self.path, "r", encoding="utf-8", newline="") as f:
                self._original = f.read()
            if self.placeholder not in self._original:
                logger.warning(f"Placeholder {self.placeholder} not found in {self.path}")
        return self._original

    def inject(self, value: str) -> str:
        """
        Write the template with the placeholder replaced by value.

        Returns:
            The rewritten document
        """
        original = self.load()
        rewritten = apply(original, self.placeholder, value)
        _write_durably(self.path, rewritten)
        self._value = value
        self._rewritten = rewritten
        logger.info(f"Updated {self.path.name} with {self.placeholder}={value}")
        return self._rewritten

    def revert(self) -> str:
        """
        Write the template back with value replaced by the placeholder.

        Works on the in-memory rewritten content. If the substitution could
        not be inverted cleanly, the retained original text is written.

        Returns:
            The restored document
        """
        if self._rewritten is None or self._value is None:
            raise RuntimeError("revert() called before inject()")

        restored = restore(self._rewritten, self._value, self.placeholder)
        if restored != self._original:
            logger.warning(
                f"Replacing {self._value} in {self.path.name} does not give back the template; "
                f"restoring the saved original instead"
            )
            restored = self._original

        _write_durably(self.path, restored)
        self._rewritten = None
        logger.info(f"Restored {self.path.name}")
        return restored
