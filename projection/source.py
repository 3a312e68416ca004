"""Read-only contract queries the projection needs.

The projection asks the contract only for values an event does not carry.
Every query is pinned to the block of the triggering event so replays are
deterministic.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel

class GlobalConfig(BaseModel):
    """Contract-wide fee configuration."""
    artist_second_sale_percentage: int
    platform_first_sale_percentage: int
    platform_second_sale_percentage: int
    platform_address: Optional[str] = None

class ControlLeverSpec(BaseModel):
    """One lever of a controller token as reported by the contract."""
    lever_id: int
    min_value: int
    max_value: int
    current_value: int

class ContractSource(ABC):
    """Synchronous view calls against the contract at a given block.

    Implementations raise SourceUnavailableError when the node cannot answer.
    """

    @abstractmethod
    def query_current_permission(self, token_id: int, owner: str, block_number: int) -> Optional[str]:
        """Address the owner has permissioned to control the token, or None."""

    @abstractmethod
    def query_global_config(self, block_number: int) -> GlobalConfig:
        """Fee percentages and platform address."""

    @abstractmethod
    def query_control_levers(self, token_id: int, block_number: int) -> List[ControlLeverSpec]:
        """Levers of a controller token with their bounds and current values."""
