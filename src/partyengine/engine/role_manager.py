"""RoleManager - assigns and rotates named roles across players."""

from typing import Optional, Sequence

from partyengine.models.snapshots import RoleSnapshot


class RoleManager:
    """Keeps exactly one role entry per active player.

    Two rotation policies:
    - strict (allow_multiple_players_per_role=False): every player's index
      into available_roles moves forward by one, wrapping around.
    - shared (allow_multiple_players_per_role=True): the first role in
      available_roles (e.g. "drawer") passes to the next player(s) in turn
      order and everybody else takes the second role (e.g. "guesser").

    What a role means is up to the game; this class only keeps the map
    consistent. The engine rotates roles together with the turn, never on
    its own.
    """

    def __init__(self, snapshot: Optional[RoleSnapshot] = None):
        self._snapshot = snapshot if snapshot is not None else RoleSnapshot()

    @classmethod
    def from_snapshot(cls, snapshot: RoleSnapshot) -> "RoleManager":
        return cls(snapshot.model_copy(deep=True))

    def snapshot(self) -> RoleSnapshot:
        return self._snapshot.model_copy(deep=True)

    @property
    def _roles(self) -> list[str]:
        return self._snapshot.available_roles

    @property
    def primary_role(self) -> str:
        return self._roles[0]

    @property
    def secondary_role(self) -> str:
        return self._roles[1] if len(self._roles) > 1 else self._roles[0]

    def initialize(self, turn_order: Sequence[str]) -> dict[str, str]:
        """Assign starting roles for players in turn order."""
        self._snapshot.player_roles = {}
        for index, player_id in enumerate(turn_order):
            if self._snapshot.allow_multiple_players_per_role:
                role = self.primary_role if index == 0 else self.secondary_role
            else:
                role = self._roles[index % len(self._roles)]
            self._snapshot.player_roles[player_id] = role
        return dict(self._snapshot.player_roles)

    def assign(self, player_id: str, role: str) -> None:
        if role not in self._roles:
            raise ValueError(f"Unknown role {role!r}, expected one of {self._roles}")
        self._snapshot.player_roles[player_id] = role

    def role_of(self, player_id: str) -> Optional[str]:
        return self._snapshot.player_roles.get(player_id)

    def has_role(self, player_id: str, role: str) -> bool:
        return self._snapshot.player_roles.get(player_id) == role

    def players_with_role(self, role: str) -> list[str]:
        return [pid for pid, r in self._snapshot.player_roles.items() if r == role]

    def roles(self) -> dict[str, str]:
        return dict(self._snapshot.player_roles)

    def add_player(self, player_id: str, role: Optional[str] = None) -> str:
        """Give a joining player a role (the default one for the policy)."""
        if role is None:
            if self._snapshot.allow_multiple_players_per_role:
                role = self.secondary_role
            else:
                role = self._roles[len(self._snapshot.player_roles) % len(self._roles)]
        self.assign(player_id, role)
        return role

    def remove_player(self, player_id: str) -> Optional[str]:
        return self._snapshot.player_roles.pop(player_id, None)

    def rotate(self, turn_order: Sequence[str], anchor: Optional[str] = None) -> dict[str, str]:
        """Move every player on to their next role.

        Args:
            turn_order: Current turn order; defines "next" for the shared policy.
            anchor: Shared policy only. The player who must hold the primary
                    role after rotating (normally the new turn holder).

        Returns:
            The new player -> role map.
        """
        if not turn_order:
            return self.roles()

        if not self._snapshot.allow_multiple_players_per_role:
            for player_id in turn_order:
                current = self._snapshot.player_roles.get(player_id, self._roles[-1])
                index = self._roles.index(current) if current in self._roles else -1
                self._snapshot.player_roles[player_id] = self._roles[(index + 1) % len(self._roles)]
            return self.roles()

        order = list(turn_order)
        holders = [pid for pid in order if self.has_role(pid, self.primary_role)]
        count = max(1, len(holders))

        if anchor is not None and anchor in order:
            start = order.index(anchor)
        elif holders:
            start = (order.index(holders[0]) + 1) % len(order)
        else:
            start = 0

        new_holders = {order[(start + k) % len(order)] for k in range(min(count, len(order)))}
        for player_id in order:
            role = self.primary_role if player_id in new_holders else self.secondary_role
            self._snapshot.player_roles[player_id] = role
        return self.roles()
