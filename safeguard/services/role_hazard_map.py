"""Role -> hazard category mapping used by the assignment engine.

The built-in table is the default; deployments can point
``ROLE_HAZARD_MAP_PATH`` at a JSON object of ``{"Role": ["Category", ...]}``.
"""
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from safeguard.core.config import Settings, settings as default_settings
from safeguard.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


DEFAULT_ROLE_HAZARD_CATEGORIES: Dict[str, List[str]] = {
    "Electrician": ["Electrical", "Heights", "Confined Space"],
    "Scaffolder": ["Heights", "Manual Handling", "Structural"],
    "Supervisor": ["Management", "Electrical", "Heights"],
    "General Labourer": ["Manual Handling", "General"],
    "Welder": ["Hot Work", "Confined Space", "PPE"],
}


class RoleHazardMap(Protocol):
    def categories_for(self, role_name: str) -> List[str]:
        ...

    def roles_for_category(self, category: str) -> List[str]:
        ...


class StaticRoleHazardMap:
    def __init__(self, table: Optional[Dict[str, List[str]]] = None):
        self._table = {k: list(v) for k, v in (table or DEFAULT_ROLE_HAZARD_CATEGORIES).items()}

    def categories_for(self, role_name: str) -> List[str]:
        return list(self._table.get(role_name, []))

    def roles_for_category(self, category: str) -> List[str]:
        return [role for role, categories in self._table.items() if category in categories]


def load_role_hazard_map(settings: Settings = default_settings) -> StaticRoleHazardMap:
    path = settings.ROLE_HAZARD_MAP_PATH
    if not path:
        return StaticRoleHazardMap()

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValidationError(f"could not read role hazard map {path}: {exc}") from exc

    if not isinstance(raw, dict) or not all(isinstance(v, list) for v in raw.values()):
        raise ValidationError(f"role hazard map {path} must map role names to category lists")

    logger.info("Loaded role hazard map", extra={"path": path, "roles": len(raw)})
    return StaticRoleHazardMap({str(k): [str(c) for c in v] for k, v in raw.items()})
