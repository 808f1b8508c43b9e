"""In-memory igloo state mirrored from the server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .models import EntryStatus, IglooError, RequirementsNotMet, Space


@dataclass(frozen=True)
class StoreSnapshot:
    spaces: List[Space]
    my_rentals: List[Space]
    selected: Optional[Space]
    rent_quote: Optional[Dict[str, Any]]
    entry_check_result: Optional[EntryStatus]
    requirements: Optional[RequirementsNotMet]
    requirements_status: Optional[Dict[str, Any]]
    show_rental_modal: bool
    show_settings_panel: bool
    show_entry_modal: bool
    show_details_panel: bool
    show_requirements_panel: bool
    is_loading: bool
    last_error: Optional[IglooError]


class SpaceStore:
    """Holds the igloo list, the ownership set and the UI-facing flags."""

    def __init__(self) -> None:
        self.spaces: List[Space] = []
        self.my_rentals: List[Space] = []
        self.selected: Optional[Space] = None
        self.rent_quote: Optional[Dict[str, Any]] = None
        self.entry_check_result: Optional[EntryStatus] = None
        self.requirements: Optional[RequirementsNotMet] = None
        self.requirements_status: Optional[Dict[str, Any]] = None

        self.show_rental_modal = False
        self.show_settings_panel = False
        self.show_entry_modal = False
        self.show_details_panel = False
        self.show_requirements_panel = False
        self.is_loading = False
        self.last_error: Optional[IglooError] = None

    # -- list state -------------------------------------------------------

    def replace_spaces(self, spaces: Iterable[Space]) -> None:
        self.spaces = list(spaces)

    def replace_rentals(self, spaces: Iterable[Space]) -> None:
        self.my_rentals = list(spaces)

    def replace_space(self, space: Space) -> bool:
        """Swap the listed record for ``space`` wholesale; unknown ids are ignored."""

        return self._swap(self.spaces, space.space_id, lambda _: space)

    def patch_space(self, space_id: str, patch: Dict[str, Any]) -> bool:
        """Merge wire fields into the listed record for ``space_id``."""

        return self._swap(self.spaces, space_id, lambda current: current.merged(patch))

    def replace_rental(self, space: Space) -> bool:
        return self._swap(self.my_rentals, space.space_id, lambda _: space)

    @staticmethod
    def _swap(items: List[Space], space_id: str, update) -> bool:
        for index, current in enumerate(items):
            if current.space_id == space_id:
                items[index] = update(current)
                return True
        return False

    # -- lookups ------------------------------------------------------------

    def get(self, space_id: str) -> Optional[Space]:
        for space in self.spaces:
            if space.space_id == space_id:
                return space
        return None

    def get_rental(self, space_id: str) -> Optional[Space]:
        for space in self.my_rentals:
            if space.space_id == space_id:
                return space
        return None

    def is_owner(self, space_id: str, wallet_address: Optional[str]) -> bool:
        if self.get_rental(space_id) is not None:
            return True
        if wallet_address:
            space = self.get(space_id)
            if space is not None and space.owner_wallet == wallet_address:
                return True
        return False

    def banner_info(self, space_id: str) -> Optional[Dict[str, Any]]:
        """Read-only projection of the display fields renderers need."""

        space = self.get(space_id)
        if space is None:
            return None
        info = dict(space.banner)
        info.update(
            {
                "ownerUsername": space.owner_username,
                "accessType": space.access_type.value,
                "hasEntryFee": space.has_entry_fee,
                "entryFeeAmount": space.entry_fee_amount,
                "hasTokenGate": space.has_token_gate,
                "tokenGateInfo": dict(space.token_gate_info) if space.token_gate_info else None,
                "isRented": space.is_rented,
                "isReserved": space.is_reserved,
            }
        )
        return info

    # -- UI state -------------------------------------------------------------

    def select(self, space: Optional[Space]) -> None:
        self.selected = space

    def select_id(self, space_id: str, fallback: Optional[Space] = None) -> Space:
        """Select the listed record for ``space_id`` or a bare placeholder."""

        space = self.get(space_id) or fallback or Space(space_id=space_id)
        self.selected = space
        return space

    def surface_requirements(self, requirements: RequirementsNotMet) -> None:
        self.entry_check_result = requirements.status
        self.requirements = requirements
        self.selected = requirements.space
        self.show_requirements_panel = True

    def close_all(self) -> None:
        self.show_rental_modal = False
        self.show_settings_panel = False
        self.show_entry_modal = False
        self.show_details_panel = False
        self.show_requirements_panel = False

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            spaces=list(self.spaces),
            my_rentals=list(self.my_rentals),
            selected=self.selected,
            rent_quote=dict(self.rent_quote) if self.rent_quote is not None else None,
            entry_check_result=self.entry_check_result,
            requirements=self.requirements,
            requirements_status=dict(self.requirements_status) if self.requirements_status is not None else None,
            show_rental_modal=self.show_rental_modal,
            show_settings_panel=self.show_settings_panel,
            show_entry_modal=self.show_entry_modal,
            show_details_panel=self.show_details_panel,
            show_requirements_panel=self.show_requirements_panel,
            is_loading=self.is_loading,
            last_error=self.last_error,
        )
