from dataclasses import dataclass


@dataclass(frozen=True)
class Dependency:
    """A (name, version) pair identifying one artifact to retrieve."""

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name} {self.version}"
