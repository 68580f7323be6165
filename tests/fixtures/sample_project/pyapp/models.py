"""Data models."""

MAX_USERS = 100


class User:
    def __init__(self, name: str) -> None:
        self.name = name


def _normalize(name):
    return name.strip()
