"""Client/site hazard overlays injected on top of role-derived hazards."""
from dataclasses import dataclass
from typing import List, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.models.hazard import Hazard


@dataclass(frozen=True)
class RecomputeContext:
    client_id: Optional[int] = None
    site_id: Optional[int] = None


class OverlayHazardSource(Protocol):
    async def hazards_for(self, session: AsyncSession, context: RecomputeContext) -> List[Hazard]:
        """Return hazards (with ``controls`` loaded) to add for this context."""
        ...


class NullOverlaySource:
    """No client/site overlays are configured."""

    async def hazards_for(self, session: AsyncSession, context: RecomputeContext) -> List[Hazard]:
        return []
