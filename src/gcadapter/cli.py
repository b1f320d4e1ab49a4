"""gcadapter CLI, a typer-based entry point."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer

from gcadapter.adapter import AdapterSession
from gcadapter.config import AppConfig
from gcadapter.packet import Controller
from gcadapter.reader import (
    AnalogEvent,
    ButtonEvent,
    ConnectionEvent,
    ControllerEvent,
    ControllerReader,
)
from gcadapter.rumble import ALL_PORTS, RumbleManager
from gcadapter.transport import TransportError

app = typer.Typer(
    name="gcadapter",
    help="Read GameCube controllers and drive rumble through a USB adapter.",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration commands.")
app.add_typer(config_app, name="config")

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file."),
]
OverrideOption = Annotated[
    Path | None,
    typer.Option("--override", "-o", help="Override TOML to merge on top of config."),
]
DebugOption = Annotated[bool, typer.Option("--debug", help="Enable debug logging.")]


# --- Read ---


@app.command()
def read(
    config: ConfigOption = None,
    override: OverrideOption = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output ports as JSON.")] = False,
    show_all: Annotated[
        bool, typer.Option("--all", help="Include disconnected ports.")
    ] = False,
    debug: DebugOption = False,
) -> None:
    """Read the current state of all ports once."""
    _setup_logging(debug)
    cfg = AppConfig.load_with_override(base=config, override=override)
    try:
        with AdapterSession.from_usb(cfg.usb) as session:
            session.refresh_inputs()
            ports = session.read_controllers()
    except TransportError as e:
        _fail(e)

    shown = [
        (number, controller)
        for number, controller in enumerate(ports, start=1)
        if show_all or controller.connected()
    ]
    if json_output:
        typer.echo(json.dumps([_port_dict(cfg, n, c) for n, c in shown], indent=2))
        return
    if not shown:
        typer.echo("No controllers connected.")
    for number, controller in shown:
        typer.echo(f"Port {number}: {controller!r}")


# --- Watch ---


@app.command()
def watch(
    config: ConfigOption = None,
    override: OverrideOption = None,
    debug: DebugOption = False,
) -> None:
    """Print controller events until interrupted."""
    _setup_logging(debug)
    cfg = AppConfig.load_with_override(base=config, override=override)

    try:
        with AdapterSession.from_usb(cfg.usb) as session:

            async def _main() -> None:
                async with ControllerReader(session, cfg.controller) as reader:
                    async for event in reader.events():
                        typer.echo(_format_event(event))

            with contextlib.suppress(KeyboardInterrupt):
                asyncio.run(_main())
    except TransportError as e:
        _fail(e)


# --- Rumble ---


@app.command()
def rumble(
    pattern: Annotated[str, typer.Argument(help="Rumble pattern name.")] = "short",
    port: Annotated[
        list[int] | None,
        typer.Option("--port", "-p", min=1, max=4, help="Port to rumble (repeatable)."),
    ] = None,
    config: ConfigOption = None,
    override: OverrideOption = None,
    debug: DebugOption = False,
) -> None:
    """Play a rumble pattern on one or more ports (default: all)."""
    _setup_logging(debug)
    cfg = AppConfig.load_with_override(base=config, override=override)
    try:
        with AdapterSession.from_usb(cfg.usb) as session:
            manager = RumbleManager(session, cfg.rumble)
            if pattern not in manager.pattern_names:
                typer.echo(f"✗ Unknown pattern {pattern!r}.", err=True)
                typer.echo(f"  Available: {', '.join(manager.pattern_names)}", err=True)
                raise typer.Exit(code=1)
            manager.play(pattern, port or ALL_PORTS)
    except TransportError as e:
        _fail(e)


# --- Doctor ---


@app.command()
def doctor(
    config: ConfigOption = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output results as JSON.")] = False,
) -> None:
    """Check system requirements and configuration."""
    results: list[dict[str, str]] = []

    def check(name: str, fn: object) -> bool:
        try:
            fn()  # type: ignore[operator]
            results.append({"name": name, "status": "ok"})
            return True
        except Exception as e:
            results.append({"name": name, "status": "fail", "message": str(e)})
            return False

    def _check_backend() -> None:
        import usb.backend.libusb1

        if usb.backend.libusb1.get_backend() is None:
            raise RuntimeError("libusb-1.0 not found. Install libusb for your platform.")

    def _check_config() -> None:
        AppConfig.load(config)
        # A missing config file means defaults

    def _check_adapter() -> None:
        import usb.core

        cfg = AppConfig.load(config).usb
        if usb.core.find(idVendor=cfg.vendor_id, idProduct=cfg.product_id) is None:
            raise RuntimeError(
                f"No adapter {cfg.vendor_id:04x}:{cfg.product_id:04x} found. Is it plugged in?"
            )

    backend_ok = check("libusb", _check_backend)
    config_ok = check("config", _check_config)
    if backend_ok and config_ok:
        check("adapter", _check_adapter)

    if json_output:
        typer.echo(json.dumps(results, indent=2))
    else:
        for result in results:
            icon = "✓" if result["status"] == "ok" else "✗"
            line = f"  {icon} {result['name']}"
            if message := result.get("message", ""):
                line += f": {message}"
            typer.echo(line)
    if any(result["status"] != "ok" for result in results):
        raise typer.Exit(code=1)


# --- Config subcommands ---


@config_app.command("show")
def config_show(config: ConfigOption = None) -> None:
    """Show effective configuration as TOML."""
    import tomli_w

    cfg = AppConfig.load(config)
    typer.echo(tomli_w.dumps(cfg.model_dump(mode="json", exclude_none=True)))


@config_app.command("validate")
def config_validate(config: ConfigOption = None) -> None:
    """Validate configuration file and report errors."""
    from pydantic import ValidationError

    from gcadapter.paths import default_config_path

    path = config or default_config_path()
    if not path.exists():
        typer.echo(f"Config file not found: {path}")
        typer.echo("Using defaults, nothing to validate.")
        return

    try:
        cfg = AppConfig.load(path)
        typer.echo(f"✓ Config valid: {path}")
        typer.echo(f"  usb.device  = {cfg.usb.vendor_id:04x}:{cfg.usb.product_id:04x}")
        typer.echo(f"  deadzone    = {cfg.controller.stick_deadzone}")
        typer.echo(f"  calibration = {len(cfg.controller.calibration)} ports")
    except ValidationError as e:
        typer.echo(f"✗ Config validation failed: {path}", err=True)
        for error in e.errors():
            loc = " -> ".join(str(item) for item in error["loc"])
            typer.echo(f"  [{loc}] {error['msg']}", err=True)
        raise typer.Exit(code=1) from e


# --- Calibrate ---


@app.command()
def calibrate(config: ConfigOption = None, debug: DebugOption = False) -> None:
    """Measure analog stick rest positions of the connected controllers."""
    import tomllib

    import tomli_w

    _setup_logging(debug)
    cfg = AppConfig.load(config)

    typer.echo("=== gcadapter Stick Calibration ===")
    typer.echo("This will measure each connected controller's analog stick centers.")
    typer.echo("\nRELEASE all analog sticks to neutral position, then press ENTER.")
    input()

    try:
        with AdapterSession.from_usb(cfg.usb) as session:
            session.refresh_inputs()
            ports = session.read_controllers()
    except TransportError as e:
        _fail(e)

    centers: dict[str, dict[str, int]] = {
        str(number): {
            "left_x": controller.left_stick.x.raw,
            "left_y": controller.left_stick.y.raw,
            "right_x": controller.right_stick.x.raw,
            "right_y": controller.right_stick.y.raw,
        }
        for number, controller in enumerate(ports, start=1)
        if controller.connected()
    }
    if not centers:
        typer.echo("✗ No controllers connected. Plug one in and try again.", err=True)
        raise typer.Exit(code=1)

    typer.echo("\nMeasured centers:")
    for number, axes in centers.items():
        values = ", ".join(f"{axis}={value}" for axis, value in axes.items())
        typer.echo(f"  port {number}: {values}")

    if typer.confirm("\nSave to config file?"):
        from gcadapter.paths import default_config_path

        target = config or default_config_path()
        data: dict[str, Any] = {}
        if target.exists():
            with target.open("rb") as file:
                data = tomllib.load(file)
        calibration = data.setdefault("controller", {}).setdefault("calibration", {})
        calibration.update(centers)

        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("wb") as file:
            tomli_w.dump(data, file)

        typer.echo(f"✓ Saved to {target}")


# --- Helpers ---


def _fail(error: Exception) -> NoReturn:
    typer.echo(f"✗ {error}", err=True)
    raise typer.Exit(code=1) from error


def _stick_center(cfg: AppConfig, port: int, side: str) -> tuple[int, int] | None:
    calibration = cfg.controller.calibration.get(port)
    if calibration is None:
        return None
    x = getattr(calibration, f"{side}_x")
    y = getattr(calibration, f"{side}_y")
    if x is None or y is None:
        return None
    return x, y


def _port_dict(cfg: AppConfig, port: int, controller: Controller) -> dict[str, Any]:
    if not controller.connected():
        return {"port": port, "connected": False, "type": controller.controller_type.name.lower()}
    return {
        "port": port,
        "connected": True,
        "type": controller.controller_type.name.lower(),
        "has_rumble": controller.status.has_rumble,
        "buttons": sorted(str(name) for name in controller.buttons.pressed()),
        "left_stick": list(controller.left_stick.coords(_stick_center(cfg, port, "left"))),
        "right_stick": list(controller.right_stick.coords(_stick_center(cfg, port, "right"))),
        "triggers": [controller.triggers.left.value(), controller.triggers.right.value()],
    }


def _format_event(event: ControllerEvent) -> str:
    if isinstance(event, ConnectionEvent):
        state = "connected" if event.connected else "disconnected"
        return f"P{event.port} {state} ({event.controller_type.name.lower()})"
    if isinstance(event, ButtonEvent):
        return f"P{event.port} {event.button} {'down' if event.pressed else 'up'}"
    if isinstance(event, AnalogEvent):
        return f"P{event.port} {event.axis} {event.value:3d} {event.normalized:+.3f}"
    return repr(event)


def _setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if not debug:
        logging.getLogger("usb").setLevel(logging.WARNING)
