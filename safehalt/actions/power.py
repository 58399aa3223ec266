from typing import Sequence, Tuple

from .base import BaseAction


class PowerOffAction(BaseAction):
    """Powers the local host off. There is no way back from a successful call."""

    def __init__(self, command: Sequence[str] = ("shutdown", "-h", "now"), **kwargs):
        super().__init__(**kwargs)
        self.command = list(command)

    @property
    def requires(self) -> Tuple[str, ...]:
        return (self.command[0],)

    async def power_off(self) -> None:
        await self._execute(self.command)
