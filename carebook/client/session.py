import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..application.lifecycle import Actor, Role
from ..exceptions import SessionClosedError

logger = logging.getLogger(__name__)


@dataclass
class ClientSession:
    """Authenticated context handed to every mirror of one viewer.

    Created once authentication succeeds and closed on logout; closing tears
    down every mirror attached to it.
    """
    actor: Actor
    token: Optional[str] = None
    _mirrors: List = field(default_factory=list, repr=False)
    _closed: bool = field(default=False, repr=False)

    @classmethod
    def open(cls, actor_id: str, role: str, token: Optional[str] = None) -> "ClientSession":
        session = cls(actor=Actor(actor_id=actor_id, role=Role(role)), token=token)
        logger.info(f"Opened client session for {session.actor.role.value} {actor_id}")
        return session

    @property
    def is_open(self) -> bool:
        return not self._closed

    def require_open(self) -> None:
        if self._closed:
            raise SessionClosedError()

    def attach(self, mirror) -> None:
        self.require_open()
        self._mirrors.append(mirror)

    def detach(self, mirror) -> None:
        if mirror in self._mirrors:
            self._mirrors.remove(mirror)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for mirror in list(self._mirrors):
            await mirror.teardown()
        self._mirrors.clear()
        self.token = None
        logger.info(f"Closed client session for {self.actor.role.value} {self.actor.actor_id}")
