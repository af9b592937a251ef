"""Shared fixtures for the certgen test cases."""

import tempfile
from pathlib import Path

from certgen.common.config import Settings


def make_settings(base_dir, **overrides) -> Settings:
    """Settings rooted at base_dir with small keys so the suite stays fast."""
    values = dict(base_dir=Path(base_dir), ca_key_size=2048, cert_key_size=2048)
    values.update(overrides)
    return Settings(**values)


class TempDirMixin:
    """Gives each test a fresh working directory in self.base_dir."""

    def setUp(self):
        super().setUp()
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.base_dir = Path(self._tmp.name)
        self.settings = make_settings(self.base_dir)
