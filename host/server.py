from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import websockets
from websockets.asyncio.server import ServerConnection

from parlor.manager import GameManager
from parlor.models import ActionResult, GameType, HostConfig, Player, SessionStatus
from parlor.session import Session

LOGGER = logging.getLogger("party_host")

# HostServer glues the session engine to WebSocket clients. Every clock and
# network concern lives here; parlor stays synchronous and I/O free.


@dataclass
class ClientSession:
    player: Player
    websocket: ServerConnection
    session_id: Optional[str] = None


@dataclass
class TurnTimer:
    session_id: str
    deadline: float
    timer_task: Optional[asyncio.Task] = None


Outbox = List[Tuple[ServerConnection, str, Dict[str, object]]]


class HostServer:
    def __init__(self, config: HostConfig, manager: Optional[GameManager] = None) -> None:
        self.config = config
        self.manager = manager or GameManager(grace_period=config.grace_period_s)
        self.clients: Dict[str, ClientSession] = {}
        self.timers: Dict[str, TurnTimer] = {}
        self.lock = asyncio.Lock()

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        async with websockets.serve(self._handle_connection, host, port):
            LOGGER.info("Party host listening on %s:%s", host, port)
            reaper = asyncio.create_task(self._reap_loop())
            try:
                await asyncio.Future()
            finally:
                reaper.cancel()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        # First message must be "hello" so we know who we are talking to.
        hello = await self._read_message(websocket)
        if hello is None or hello.get("type") != "hello":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected hello")
            await websocket.close()
            return
        player_id = hello.get("player_id")
        name = hello.get("name")
        if not isinstance(player_id, str) or not player_id.strip():
            await self._send_error(websocket, code="BAD_SCHEMA", msg="player_id required")
            await websocket.close()
            return
        if not isinstance(name, str) or not name.strip():
            name = player_id
        player = Player(id=player_id.strip(), name=name.strip())

        previous = self.clients.get(player.id)
        if previous:
            await previous.websocket.close(code=4000, reason="Replaced by new connection")
        client = ClientSession(
            player=player,
            websocket=websocket,
            session_id=previous.session_id if previous else None,
        )
        self.clients[player.id] = client
        LOGGER.info("Player %s connected as %s", player.id, player.name)

        async with self.lock:
            welcome = {"player_id": player.id, "lobby": self.manager.public_sessions()}
            snapshot = self._snapshot_locked(client)
        await self._send_json(websocket, "welcome", welcome)
        if snapshot is not None:
            await self._send_json(websocket, "snapshot", snapshot)

        try:
            async for raw in websocket:
                await self._dispatch(client, self._decode(raw))
        except websockets.ConnectionClosed:
            pass
        finally:
            if self.clients.get(player.id) is client:
                self.clients.pop(player.id, None)
        LOGGER.info("Player %s disconnected", player.id)

    async def _dispatch(self, client: ClientSession, message: Dict[str, object]) -> None:
        handlers: Dict[str, Callable[[ClientSession, Dict[str, object]], Awaitable[None]]] = {
            "lobby": self._handle_lobby,
            "create": self._handle_create,
            "join": self._handle_join,
            "leave": self._handle_leave,
            "start": self._handle_start,
            "action": self._handle_action,
        }
        handler = handlers.get(message.get("type"))  # type: ignore[arg-type]
        if handler is None:
            await self._send_error(client.websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
            return
        await handler(client, message)

    # Message handlers ------------------------------------------------

    async def _handle_lobby(self, client: ClientSession, message: Dict[str, object]) -> None:
        async with self.lock:
            lobby = self.manager.public_sessions()
        await self._send_json(client.websocket, "lobby", {"sessions": lobby})

    async def _handle_create(self, client: ClientSession, message: Dict[str, object]) -> None:
        try:
            game_type = GameType(message.get("game_type"))
        except ValueError:
            await self._send_error(client.websocket, code="BAD_SCHEMA", msg="Unknown game type")
            return
        capacity = message.get("capacity", 8)
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            await self._send_error(client.websocket, code="BAD_SCHEMA", msg="capacity must be an integer")
            return

        async with self.lock:
            if self._current_session_locked(client) is not None:
                outbox: Outbox = [(client.websocket, "error", {"code": "IN_SESSION", "msg": "Leave your game first"})]
            else:
                session = self.manager.create(
                    game_type,
                    client.player,
                    private=bool(message.get("private", False)),
                    capacity=capacity,
                )
                client.session_id = session.id
                LOGGER.info("Session %s (%s) created by %s", session.id, game_type.value, client.player.id)
                outbox = self._snapshots_locked(session)
        await self._flush(outbox)

    async def _handle_join(self, client: ClientSession, message: Dict[str, object]) -> None:
        session_id = message.get("session_id")
        if not isinstance(session_id, str):
            await self._send_error(client.websocket, code="BAD_SCHEMA", msg="session_id required")
            return
        async with self.lock:
            if self._current_session_locked(client) is not None:
                outbox: Outbox = [(client.websocket, "error", {"code": "IN_SESSION", "msg": "Leave your game first"})]
            else:
                result = self.manager.join(session_id, client.player)
                if result.ok:
                    client.session_id = session_id
                    outbox = self._snapshots_locked(self.manager.sessions[session_id])
                else:
                    outbox = [self._rejection(client, result)]
        await self._flush(outbox)

    async def _handle_leave(self, client: ClientSession, message: Dict[str, object]) -> None:
        async with self.lock:
            session = self._current_session_locked(client)
            if session is None:
                outbox: Outbox = [(client.websocket, "error", {"code": "NOT_IN_SESSION", "msg": "Not in a game"})]
            else:
                result = self.manager.leave(session.id, client.player.id)
                client.session_id = None
                outbox = [(client.websocket, "left", {"session_id": session.id, "ok": result.ok})]
                if session.id in self.manager.sessions:
                    self._sync_timer_locked(session)
                    outbox.extend(self._snapshots_locked(session))
                else:
                    self._cancel_timer(session.id)
        await self._flush(outbox)

    async def _handle_start(self, client: ClientSession, message: Dict[str, object]) -> None:
        async with self.lock:
            session = self._current_session_locked(client)
            if session is None:
                outbox: Outbox = [(client.websocket, "error", {"code": "NOT_IN_SESSION", "msg": "Not in a game"})]
            else:
                result = session.start()
                if result.ok:
                    LOGGER.info("Session %s started with %s players", session.id, len(session.players))
                    self._sync_timer_locked(session)
                    outbox = self._snapshots_locked(session)
                else:
                    outbox = [self._rejection(client, result)]
        await self._flush(outbox)

    async def _handle_action(self, client: ClientSession, message: Dict[str, object]) -> None:
        action = message.get("action")
        payload = message.get("payload") or {}
        if not isinstance(action, str) or not isinstance(payload, dict):
            await self._send_error(client.websocket, code="BAD_SCHEMA", msg="action and payload required")
            return
        async with self.lock:
            session = self._current_session_locked(client)
            if session is None:
                outbox: Outbox = [(client.websocket, "error", {"code": "NOT_IN_SESSION", "msg": "Not in a game"})]
            else:
                result = session.act(client.player.id, action, payload)
                if result.ok:
                    LOGGER.debug("Applied %s for %s in %s", action, client.player.id, session.id)
                    self._sync_timer_locked(session)
                    outbox = self._snapshots_locked(session)
                else:
                    LOGGER.warning(
                        "Rejected action session=%s player=%s action=%s reason=%s",
                        session.id,
                        client.player.id,
                        action,
                        result.error.value if result.error else None,
                    )
                    outbox = [self._rejection(client, result)]
        await self._flush(outbox)

    # Timers ----------------------------------------------------------

    def _sync_timer_locked(self, session: Session) -> None:
        """Re-arm the turn clock after any accepted change, or stop it."""
        self._cancel_timer(session.id)
        if self.config.turn_time_ms <= 0 or session.status != SessionStatus.PLAYING:
            return
        delay = self.config.turn_time_ms / 1000
        loop = asyncio.get_running_loop()
        timer = TurnTimer(session_id=session.id, deadline=loop.time() + delay)
        timer.timer_task = asyncio.create_task(self._expire_after(session.id, delay))
        self.timers[session.id] = timer

    def _cancel_timer(self, session_id: str) -> None:
        timer = self.timers.pop(session_id, None)
        if timer and timer.timer_task:
            timer.timer_task.cancel()

    async def _expire_after(self, session_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        async with self.lock:
            self.timers.pop(session_id, None)
            session = self.manager.get(session_id)
            if session is None or session.status != SessionStatus.PLAYING:
                return
            result = session.force_advance()
            LOGGER.info("Turn timer expired for %s; forced advance ok=%s", session_id, result.ok)
            self._sync_timer_locked(session)
            outbox = self._snapshots_locked(session)
        await self._flush(outbox)

    async def _reap_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.reap_interval_s)
            await self.reap()

    async def reap(self) -> List[str]:
        async with self.lock:
            expired = self.manager.reap()
            for session_id in expired:
                self._cancel_timer(session_id)
                for client in self.clients.values():
                    if client.session_id == session_id:
                        client.session_id = None
        if expired:
            LOGGER.info("Archived finished sessions: %s", ", ".join(expired))
        return expired

    # Payload helpers -------------------------------------------------

    def _current_session_locked(self, client: ClientSession) -> Optional[Session]:
        if client.session_id is None:
            return None
        session = self.manager.get(client.session_id)
        if session is None or session.find(client.player.id) is None:
            client.session_id = None
            return None
        return session

    def _snapshot_locked(self, client: ClientSession) -> Optional[Dict[str, object]]:
        session = self._current_session_locked(client)
        if session is None:
            return None
        return self._snapshot_payload_locked(session, client.player.id)

    def _snapshots_locked(self, session: Session) -> Outbox:
        # Every member gets a view that only carries their own hand.
        outbox: Outbox = []
        for player in session.players:
            client = self.clients.get(player.id)
            if client is None or client.session_id != session.id:
                continue
            outbox.append((client.websocket, "snapshot", self._snapshot_payload_locked(session, player.id)))
        return outbox

    def _snapshot_payload_locked(self, session: Session, player_id: str) -> Dict[str, object]:
        return {
            "session": session.snapshot(player_id).to_payload(),
            "time_remaining_ms": self._time_remaining_ms(session.id),
        }

    def _time_remaining_ms(self, session_id: str) -> Optional[int]:
        timer = self.timers.get(session_id)
        if timer is None:
            return None
        remaining = timer.deadline - asyncio.get_running_loop().time()
        return max(0, int(remaining * 1000))

    def _rejection(self, client: ClientSession, result: ActionResult) -> Tuple[ServerConnection, str, Dict[str, object]]:
        code = result.error.value if result.error else "REJECTED"
        return client.websocket, "error", {"code": code, "msg": result.message}

    async def _flush(self, outbox: Outbox) -> None:
        if not outbox:
            return
        await asyncio.gather(
            *(self._send_json(websocket, msg_type, payload) for websocket, msg_type, payload in outbox),
            return_exceptions=True,
        )

    async def _send_json(self, websocket: ServerConnection, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: ServerConnection, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: ServerConnection) -> Optional[Dict[str, object]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: str) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return message if isinstance(message, dict) else {}
