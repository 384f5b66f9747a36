"""
strategy/costs.py - Per-venue trading fee and gas cost models.

Each venue has exactly one cost shape for its lifetime:
- ProportionalFee(fee_bps, gas_fee_quote)
- FixedFee(fixed_fee_quote, gas_fee_quote)
"""

from decimal import Decimal
from typing import Any, Iterable, Mapping, Union

from core.constants import VenueId
from core.exceptions import ConfigError, UnknownVenueError, ValidationError
from core.math import bps_to_decimal, to_non_negative_decimal
from core.models import CostModel, FixedFee, ProportionalFee, coerce_venue


def leg_fee(model: CostModel, amount_quote: Decimal) -> Decimal:
    """
    Trading fee charged on one leg of amount_quote notional.

    Proportional venues charge amount * fee_bps / 10000, fixed venues a
    flat fee. Gas is not included.
    """
    if isinstance(model, ProportionalFee):
        return amount_quote * bps_to_decimal(model.fee_bps)
    if isinstance(model, FixedFee):
        return model.fixed_fee_quote
    raise TypeError(f"Unsupported cost model: {type(model).__name__}")


def cost_model_from_dict(venue: Union[VenueId, str], data: Mapping[str, Any]) -> CostModel:
    """
    Build a cost model from a config mapping.

    Exactly one of fee_bps / fixed_fee_quote must be present, plus
    gas_fee_quote. Raises ConfigError naming the offending key.
    """
    has_bps = data.get("fee_bps") is not None
    has_fixed = data.get("fixed_fee_quote") is not None

    if has_bps == has_fixed:
        raise ConfigError(
            f"Venue {venue}: set exactly one of fee_bps / fixed_fee_quote",
            details={"venue": str(venue), "keys": sorted(data.keys())},
        )
    if data.get("gas_fee_quote") is None:
        raise ConfigError(
            f"Venue {venue}: gas_fee_quote is required",
            details={"venue": str(venue)},
        )

    key = "fee_bps" if has_bps else "fixed_fee_quote"
    try:
        fee = to_non_negative_decimal(data[key], key)
        gas = to_non_negative_decimal(data["gas_fee_quote"], "gas_fee_quote")
    except ValidationError as e:
        raise ConfigError(
            f"Venue {venue}: {e.message}",
            details={"venue": str(venue), **e.details},
        )

    if has_bps:
        return ProportionalFee(fee_bps=fee, gas_fee_quote=gas)
    return FixedFee(fixed_fee_quote=fee, gas_fee_quote=gas)


class CostModelRegistry:
    """
    Venue -> CostModel lookup.

    Usage:
        registry = CostModelRegistry({
            VenueId.UNISWAP_V3: ProportionalFee(Decimal("0"), Decimal("0.004")),
        })
        model = registry.get(VenueId.UNISWAP_V3)
    """

    def __init__(self, models: Mapping[Union[VenueId, str], CostModel] | None = None):
        self._models: dict[VenueId, CostModel] = {}
        for venue, model in (models or {}).items():
            self.register(venue, model)

    def register(self, venue: Union[VenueId, str], model: CostModel) -> None:
        """Register the single cost model of a venue."""
        venue = coerce_venue(venue)
        if not isinstance(model, (ProportionalFee, FixedFee)):
            raise ConfigError(
                f"Venue {venue.value}: unsupported cost model {type(model).__name__}",
                details={"venue": venue.value},
            )
        if venue in self._models:
            raise ConfigError(
                f"Venue {venue.value} already has a cost model",
                details={"venue": venue.value},
            )
        self._models[venue] = model

    def get(self, venue: Union[VenueId, str]) -> CostModel:
        """
        Cost model of a venue.

        Raises UnknownVenueError if the venue is unregistered.
        """
        resolved = coerce_venue(venue)
        try:
            return self._models[resolved]
        except KeyError:
            raise UnknownVenueError(
                f"No cost model registered for venue {resolved.value}",
                details={"venue": resolved.value, "registered": [v.value for v in self._models]},
            )

    def require(self, venues: Iterable[Union[VenueId, str]]) -> None:
        """Fail fast if any venue lacks a cost model."""
        for venue in venues:
            self.get(venue)

    @property
    def venues(self) -> list[VenueId]:
        return list(self._models)

    def __contains__(self, venue: object) -> bool:
        try:
            return coerce_venue(venue) in self._models
        except UnknownVenueError:
            return False

    def __len__(self) -> int:
        return len(self._models)

    @classmethod
    def from_config(cls, data: Mapping[str, Mapping[str, Any]]) -> "CostModelRegistry":
        """
        Build from {venue_id: {fee_bps|fixed_fee_quote, gas_fee_quote}}.

        Unknown venue ids are configuration defects (UnknownVenueError).
        """
        registry = cls()
        for venue_key, entry in data.items():
            venue = coerce_venue(venue_key)
            registry.register(venue, cost_model_from_dict(venue.value, entry))
        return registry
