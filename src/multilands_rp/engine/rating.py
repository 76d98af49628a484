from __future__ import annotations

from multilands_rp.errors import GameError
from multilands_rp.mechanics.rating import DEFAULT_REFERENCES, Tier
from multilands_rp.storage.repos import RatingRepo


def _tier(value: Tier | str) -> Tier:
    try:
        return Tier(value)
    except ValueError as e:
        choices = ", ".join(t.value for t in Tier)
        raise GameError(f'Unknown rating tier "{value}". Choose one of: {choices}.') from e


class RatingResolver:
    """Per-user cosmetic image for each roll tier, with fixed defaults."""

    def __init__(self, repo: RatingRepo) -> None:
        self.repo = repo

    def reference(self, owner_id: str, tier: Tier | str) -> str:
        tier = _tier(tier)
        return self.repo.get(owner_id, tier.value) or DEFAULT_REFERENCES[tier]

    def set_reference(self, owner_id: str, tier: Tier | str, image_url: str) -> None:
        self.repo.set(owner_id, _tier(tier).value, image_url)

    def clear_reference(self, owner_id: str, tier: Tier | str) -> bool:
        """Drop a customization. Returns False if there was none."""
        return self.repo.clear(owner_id, _tier(tier).value)
