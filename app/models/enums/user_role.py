import enum


class UserRole(str, enum.Enum):
    EDITOR = "EDITOR"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"

    @property
    def rank(self) -> int:
        return ROLE_RANK[self]

    def at_least(self, other: "UserRole") -> bool:
        return self.rank >= other.rank


ROLE_RANK = {
    UserRole.EDITOR: 1,
    UserRole.ADMIN: 2,
    UserRole.SUPER_ADMIN: 3,
}
