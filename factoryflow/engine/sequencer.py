"""
Mixed-model sequencer for FactoryFlow.

Interleaves the product models of a day's build so that the mix stays
level at every point of the day (goal chasing / heijunka):

    d_i = round_half_up(ratio_i * demand)  rounding drift goes to the largest model
    w_i = demand / d_i                     ideal spacing between units of model i
    a_i = w_i / 2                          next ideal launch position of model i

Each slot launches the model with remaining demand whose next ideal
position a_i comes first, then advances a_i by w_i.
"""

import logging
import math
from typing import Optional, Sequence

from factoryflow.config.schema import FactoryflowConfig, get_default_config
from factoryflow.models.production import ProductionUnit
from factoryflow.models.tasks import ProductModel

logger = logging.getLogger(__name__)


class MixedModelSequencer:
    """Builds a levelled launch order for a daily demand."""

    def __init__(self, config: Optional[FactoryflowConfig] = None):
        self.config = config or get_default_config()

    def model_demands(self, models: Sequence[ProductModel], daily_demand: int) -> list[int]:
        """Integer units per model, summing exactly to the daily demand.

        Args:
            models: Product models in mix order
            daily_demand: Units to build

        Returns:
            Units per model, aligned with `models`
        """
        if not models or daily_demand <= 0:
            return [0] * len(models)

        ratio_total = sum(m.ratio for m in models)
        if abs(ratio_total - 1.0) > self.config.sequencing.ratio_tolerance:
            logger.warning("Model ratios sum to %.3f, expected 1.0", ratio_total)

        # Half-up rounding; round() would send 4.5 to 4
        demands = [math.floor(m.ratio * daily_demand + 0.5) for m in models]
        drift = daily_demand - sum(demands)
        if drift:
            largest = max(range(len(demands)), key=lambda i: (demands[i], -i))
            demands[largest] += drift
            if demands[largest] < 0:
                # Only reachable with ratios far above 1.0; spread the rest
                # over the other models in mix order.
                shortfall = -demands[largest]
                demands[largest] = 0
                for i in range(len(demands)):
                    take = min(shortfall, demands[i])
                    demands[i] -= take
                    shortfall -= take
        return demands

    def sequence(self, models: Sequence[ProductModel], daily_demand: int) -> list[int]:
        """Levelled build order of model ids, `daily_demand` long."""
        demands = self.model_demands(models, daily_demand)
        total = sum(demands)
        spacing = [total / d if d > 0 else math.inf for d in demands]
        position = [w / 2 for w in spacing]

        order: list[int] = []
        for _ in range(total):
            chosen = -1
            best = math.inf
            for i, remaining in enumerate(demands):
                if remaining > 0 and position[i] < best:
                    best = position[i]
                    chosen = i
            if chosen == -1:
                break

            order.append(models[chosen].model_id)
            position[chosen] += spacing[chosen]
            demands[chosen] -= 1
        return order

    def production_units(
        self,
        models: Sequence[ProductModel],
        daily_demand: int,
    ) -> list[ProductionUnit]:
        """The build order as ProductionUnit records."""
        return [
            ProductionUnit(
                unit_id=f"{model_id}-{index}",
                model_id=model_id,
                sequence_index=index,
            )
            for index, model_id in enumerate(self.sequence(models, daily_demand))
        ]
