"""Discord guild payload and the member stats derived from it."""

from dataclasses import dataclass


@dataclass
class GuildCounts:
    id: str
    name: str
    approximate_member_count: int
    approximate_presence_count: int

    @classmethod
    def from_payload(cls, payload: dict) -> "GuildCounts":
        return cls(
            id=str(payload.get("id", "")),
            name=payload.get("name", ""),
            approximate_member_count=int(payload["approximate_member_count"]),
            approximate_presence_count=int(payload["approximate_presence_count"]),
        )


@dataclass
class MemberStats:
    total_members: int
    online_members: int

    @classmethod
    def from_guild(cls, guild: GuildCounts) -> "MemberStats":
        return cls(
            total_members=guild.approximate_member_count,
            online_members=guild.approximate_presence_count,
        )

    def to_dict(self) -> dict:
        return {"totalMembers": self.total_members, "onlineMembers": self.online_members}
