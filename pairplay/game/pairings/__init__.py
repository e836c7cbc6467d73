from pairplay.game.pairings.service import (
    accept_pairing_invite,
    create_pairing_invite,
    decline_pairing_invite,
    get_pairing_for_member,
    list_pairings_for_user,
    resolve_party_role,
    update_pairing_preferences,
)

__all__ = [
    "accept_pairing_invite",
    "create_pairing_invite",
    "decline_pairing_invite",
    "get_pairing_for_member",
    "list_pairings_for_user",
    "resolve_party_role",
    "update_pairing_preferences",
]
