"""Flask application factory for the procsim JSON API.

``create_app`` boots a simulation and returns a Flask app exposing it:

- ``GET /api/status``: system summary.
- ``GET /api/processes``: process table snapshot.
- ``POST /api/processes``: create a process (fields optional).
- ``DELETE /api/processes/<pid>``: terminate a process.
- ``GET /api/memory``: block map and usage.
- ``POST /api/scheduler``: switch policy: ``{"policy": "sjf"}``.
- ``POST /api/start`` / ``POST /api/stop``: run or pause the scheduler.
- ``POST /api/tick``: advance simulated time: ``{"count": 3}``.
- ``POST /api/execute``: run a shell command: ``{"command": "ps"}``.
"""

from __future__ import annotations

from typing import Any, TypeAlias

from flask import Flask, Response, jsonify, request

from procsim.config import SimulationConfig
from procsim.kernel import Simulation
from procsim.memory.allocator import AllocationFailedError
from procsim.process.scheduler import UnknownPolicyError
from procsim.realtime import ClockDriver
from procsim.shell import Shell

_HTTP_BAD_REQUEST = 400
_HTTP_NOT_FOUND = 404
_HTTP_INSUFFICIENT_STORAGE = 507
_MAX_TICKS_PER_REQUEST = 1000

_JsonResult: TypeAlias = tuple[Response, int] | Response


def create_app(
    *,
    config: SimulationConfig | None = None,
    realtime: bool = False,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Settings for the simulation.
        realtime: Start a clock driver so the simulation advances on
            its own; otherwise time only moves via ``/api/tick``.

    Returns:
        A configured Flask application ready to serve.

    """
    simulation = Simulation(config=config)
    simulation.boot()
    shell = Shell(simulation=simulation)

    app = Flask(__name__)
    app.extensions["procsim"] = simulation

    if realtime:
        driver = ClockDriver(simulation)
        driver.start()
        app.extensions["procsim.clock"] = driver

    def _error(message: str, status: int) -> tuple[Response, int]:
        return jsonify({"error": message}), status

    def _json_body() -> dict[str, Any]:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    @app.route("/api/status")
    def status() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the system summary."""
        return jsonify(simulation.sysinfo())

    @app.route("/api/processes")
    def list_processes() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return every live process in arrival order."""
        return jsonify([p.to_dict() for p in simulation.processes()])

    @app.route("/api/processes", methods=["POST"])
    def create_process() -> _JsonResult:  # pyright: ignore[reportUnusedFunction]
        """Create a process from optional JSON fields.

        Accepts ``name``, ``priority``, ``memory_mb``, and ``burst``.
        """
        data = _json_body()
        for field in ("memory_mb", "burst"):
            value = data.get(field)
            if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
                return _error(f"'{field}' must be an integer", _HTTP_BAD_REQUEST)
        if data.get("name") is not None and not isinstance(data["name"], str):
            return _error("'name' must be a string", _HTTP_BAD_REQUEST)
        try:
            process = simulation.create_process(
                name=data.get("name"),
                priority=data.get("priority"),
                memory_mb=data.get("memory_mb"),
                burst=data.get("burst"),
            )
        except AllocationFailedError as e:
            return _error(str(e), _HTTP_INSUFFICIENT_STORAGE)
        except (TypeError, ValueError) as e:
            return _error(str(e), _HTTP_BAD_REQUEST)
        return jsonify(process.snapshot().to_dict()), 201

    @app.route("/api/processes/<int:pid>", methods=["DELETE"])
    def terminate_process(pid: int) -> _JsonResult:  # pyright: ignore[reportUnusedFunction]
        """Terminate a process."""
        if not simulation.terminate_process(pid):
            return _error(f"No process with PID {pid}", _HTTP_NOT_FOUND)
        return jsonify({"terminated": pid})

    @app.route("/api/memory")
    def memory() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the block map and usage counters."""
        snapshot = simulation.memory()
        return jsonify(
            {
                "blocks": list(snapshot.blocks),
                "used_mb": snapshot.used_mb,
                "free_mb": snapshot.free_mb,
                "total_mb": snapshot.total_mb,
                "block_size_mb": snapshot.block_size_mb,
                "usage_percent": snapshot.usage_percent,
            }
        )

    @app.route("/api/scheduler", methods=["POST"])
    def set_scheduler() -> _JsonResult:  # pyright: ignore[reportUnusedFunction]
        """Switch the scheduling policy."""
        name = _json_body().get("policy")
        if not isinstance(name, str):
            return _error("Missing 'policy' field", _HTTP_BAD_REQUEST)
        try:
            policy = simulation.set_policy(name)
        except UnknownPolicyError as e:
            return _error(str(e), _HTTP_BAD_REQUEST)
        return jsonify({"policy": str(policy), "scheduling": simulation.is_scheduling})

    @app.route("/api/start", methods=["POST"])
    def start() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Start the scheduler."""
        simulation.start()
        return jsonify({"scheduling": True})

    @app.route("/api/stop", methods=["POST"])
    def stop() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Pause the scheduler."""
        simulation.stop()
        return jsonify({"scheduling": False})

    @app.route("/api/tick", methods=["POST"])
    def tick() -> _JsonResult:  # pyright: ignore[reportUnusedFunction]
        """Advance simulated time."""
        count = _json_body().get("count", 1)
        if not isinstance(count, int) or not 1 <= count <= _MAX_TICKS_PER_REQUEST:
            return _error(
                f"'count' must be an integer within 1..{_MAX_TICKS_PER_REQUEST}",
                _HTTP_BAD_REQUEST,
            )
        return jsonify(simulation.run(count))

    @app.route("/api/execute", methods=["POST"])
    def execute() -> _JsonResult:  # pyright: ignore[reportUnusedFunction]
        """Execute a shell command and return its output."""
        command = _json_body().get("command")
        if not isinstance(command, str):
            return _error("Missing 'command' field", _HTTP_BAD_REQUEST)
        return jsonify({"output": shell.execute(command)})

    return app


def main() -> None:
    """Run the development server with a real-time clock.

    This is the ``procsim-web`` console entry point.
    """
    app = create_app(realtime=True)
    app.run(port=8080)
