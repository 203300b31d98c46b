from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Iterable, List, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import FlockParameters, SimulationConfig
from ..sim.core.flock import Flock
from ..sim.systems import spawn
from ..sim.utils.math3d import Point, as_tuple, coerce_positions
from .component import FlockComponent

logger = logging.getLogger(__name__)

_PARAMETER_NAMES = frozenset(f.name for f in fields(FlockParameters))
# Upper bound on snapshots held for clients that have not caught up yet.
_SNAPSHOT_BACKLOG = 64


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


def parse_parameters(base: FlockParameters, values: Dict[str, Any]) -> FlockParameters:
    unknown = set(values) - _PARAMETER_NAMES
    if unknown:
        raise ValueError(f"Unknown parameters: {', '.join(sorted(unknown))}")
    coerced: Dict[str, float] = {}
    for name, value in values.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Parameter {name} must be a number, got {value!r}")
        coerced[name] = float(value)
    return replace(base, **coerced)


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.parameters = replace(config.parameters)
        self.starting_positions = spawn.starting_positions(config)
        self.component = FlockComponent(symmetric_neighbors=config.symmetric_neighbors, seed=config.seed)
        self.component.reset(self.starting_positions, self.parameters)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=_SNAPSHOT_BACKLOG)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    @property
    def flock(self) -> Flock:
        return self.component.flock

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self, positions: Optional[Iterable[Point]] = None) -> None:
        # Coerce before taking the lock so bad input leaves the flock untouched.
        new_positions = coerce_positions(positions) if positions is not None else None
        async with self._lock:
            if new_positions is not None:
                self.starting_positions = new_positions
            self.component.reset(self.starting_positions, self.parameters)
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def set_parameters(self, values: Dict[str, Any]) -> FlockParameters:
        parameters = parse_parameters(self.parameters, values)
        async with self._lock:
            self.parameters = parameters
        logger.info("Parameters updated: %s", asdict(parameters))
        return parameters

    async def step(self) -> None:
        async with self._lock:
            # Parameters are applied on every evaluation, like any other host input.
            self.component.solve(False, self.starting_positions, self.parameters)
            self.tick += 1

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            await self.step()
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def positions(self) -> List[tuple[float, float, float]]:
        return [as_tuple(position) for position in self.flock.positions()]

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.flock.snapshot()
        payload = {
            "type": "snapshot",
            "tick": self.tick,
            "payload": {
                "tick": self.tick,
                "metrics": asdict(snapshot.metrics) if snapshot.metrics is not None else None,
                "boids": snapshot.boids,
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=self.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)
        await self._trim_snapshot_queue()

    async def _trim_snapshot_queue(self) -> None:
        async with self._queue_lock:
            if not self.clients:
                # Only the newest snapshot is needed for the next client to connect.
                while len(self._snapshot_queue) > 1:
                    self._snapshot_queue.popleft()
                return
            oldest_needed = min(self._client_last_sent.get(client, -1) for client in self.clients)
            while len(self._snapshot_queue) > 1 and self._snapshot_queue[0].tick < oldest_needed:
                self._snapshot_queue.popleft()


app = FastAPI(title="Boid Flock Simulation")
controller = SimulationController(SimulationConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    metrics = controller.flock.metrics
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": len(controller.flock),
            "metrics": asdict(metrics) if metrics is not None else None,
        }
    )


@app.get("/api/positions")
async def positions() -> JSONResponse:
    return JSONResponse({"tick": controller.tick, "positions": controller.positions()})


@app.get("/api/parameters")
async def get_parameters() -> JSONResponse:
    return JSONResponse(asdict(controller.parameters))


@app.post("/api/parameters")
async def update_parameters(payload: dict) -> JSONResponse:
    try:
        parameters = await controller.set_parameters(payload)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return JSONResponse(asdict(parameters))


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation(payload: Optional[dict] = None) -> JSONResponse:
    positions = (payload or {}).get("positions")
    try:
        await controller.reset(positions)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return JSONResponse(
        {"running": controller.running, "tick": controller.tick, "population": len(controller.flock)}
    )


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller", "SimulationController", "parse_parameters"]
