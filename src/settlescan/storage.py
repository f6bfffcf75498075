"""JSON persistence for provider settings and usage logs."""

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from settlescan.models import ProviderSettings, UsageLogEntry

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"
USAGE_LOGS_FILE = "usage_logs.json"

_usage_logs_adapter = TypeAdapter(list[UsageLogEntry])


class StateStore:
    """Reads and writes session state under a data directory.

    Attributes:
        data_dir: Directory holding the state files
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir

    @property
    def settings_path(self) -> Path:
        return self.data_dir / SETTINGS_FILE

    @property
    def usage_logs_path(self) -> Path:
        return self.data_dir / USAGE_LOGS_FILE

    def load_settings(self) -> ProviderSettings:
        """Load the saved provider selection, falling back to defaults.

        An unknown model is reset to the provider's default and the
        corrected selection is written back.
        """
        raw = self._read_json(self.settings_path)
        if not isinstance(raw, dict):
            return ProviderSettings()
        try:
            settings = ProviderSettings.model_validate(raw)
        except ValidationError as e:
            logger.warning("Ignoring invalid settings in %s: %s", self.settings_path, e)
            return ProviderSettings()
        if settings.model != raw.get("model"):
            self.save_settings(settings)
        return settings

    def save_settings(self, settings: ProviderSettings) -> None:
        self._write_text(self.settings_path, settings.model_dump_json(indent=2))

    def load_usage_logs(self) -> list[UsageLogEntry]:
        raw = self._read_json(self.usage_logs_path)
        if raw is None:
            return []
        try:
            return _usage_logs_adapter.validate_python(raw)
        except ValidationError as e:
            logger.warning("Ignoring invalid usage logs in %s: %s", self.usage_logs_path, e)
            return []

    def save_usage_logs(self, entries: list[UsageLogEntry]) -> None:
        payload = _usage_logs_adapter.dump_json(entries, indent=2).decode("utf-8")
        self._write_text(self.usage_logs_path, payload)

    def _read_json(self, path: Path) -> object | None:
        if not path.is_file():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return None

    def _write_text(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(content, encoding="utf-8")
        tmp_path.replace(path)
