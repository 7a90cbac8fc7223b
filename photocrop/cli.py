from __future__ import annotations

import json
import logging
import struct
import time
from pathlib import Path
from typing import Any, NoReturn

import typer

from photocrop.config import load_config, write_default_config
from photocrop.errors import PhotoCropError
from photocrop.meta.exif_io import unpack_value
from photocrop.meta.geocode import resolve_address
from photocrop.meta.rational import parse_coordinate_text
from photocrop.meta.store import ExportOverrides
from photocrop.models import MetadataTag
from photocrop.naming import build_output_name
from photocrop.presets import AspectRatio, QualityTier
from photocrop.viewport.session import ViewportSession

app = typer.Typer(add_completion=False, no_args_is_help=True, help="PhotoCrop fixed-aspect crop and export CLI.")
LOGGER = logging.getLogger("photocrop")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _fail(message: str) -> NoReturn:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(1)


def _resolve_output_format(fmt: str) -> str:
    f = fmt.lower()
    if f in {"jpeg", "jpg"}:
        return "jpg"
    if f == "png":
        return "png"
    raise ValueError(f"output format must be jpeg/jpg or png, got: {fmt!r}")


def _parse_display(value: str) -> tuple[int, int]:
    parts = value.lower().replace(" ", "").split("x")
    if len(parts) != 2:
        raise ValueError(f"display size must look like 800x600, got: {value!r}")
    width, height = int(parts[0]), int(parts[1])
    if width <= 0 or height <= 0:
        raise ValueError(f"display size must be positive, got: {value!r}")
    return width, height


def _tag_value(tag: MetadataTag) -> Any:
    try:
        value = unpack_value(tag.type_code, tag.value)
    except (ValueError, struct.error):
        return tag.value.hex()
    if isinstance(value, bytes):
        text = value.rstrip(b"\x00")
        if text and all(32 <= byte < 127 for byte in text):
            return text.decode("ascii")
        return value.hex()
    return value


@app.command()
def crop(
    file: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
    out: Path | None = typer.Option(None, "--out", help="Output directory (default: configured storage folder)."),
    aspect: str | None = typer.Option(None, "--aspect", help="16:9 | 9:16 | Square | 4:5 | 5:4"),
    quality: str | None = typer.Option(None, "--quality", help="high | low | original"),
    zoom_mode: str | None = typer.Option(None, "--zoom-mode", help="fit | fill"),
    zoom_steps: int = typer.Option(0, "--zoom-steps", help="Zoom button presses: positive zooms out, negative zooms in."),
    pan_x: int = typer.Option(0, "--pan-x", help="Horizontal drag in display pixels."),
    pan_y: int = typer.Option(0, "--pan-y", help="Vertical drag in display pixels."),
    rotate: int = typer.Option(0, "--rotate", help="Quarter turns, clockwise when positive."),
    flip: bool = typer.Option(False, "--flip", help="Mirror horizontally."),
    angle: float = typer.Option(0.0, "--angle", min=-180.0, max=180.0, help="Free rotation in degrees, clockwise."),
    gps: str | None = typer.Option(None, "--gps", help='Override GPS, e.g. "37.4219, -122.0840".'),
    clear_gps: bool = typer.Option(False, "--clear-gps", help="Remove GPS coordinates from the export."),
    display: str = typer.Option("800x600", "--display", help="Virtual viewport size used for the overlay."),
    output_format: str = typer.Option("jpeg", "--format", help="Output format: jpeg|png"),
    jpeg_quality: int | None = typer.Option(None, "--jpeg-quality", min=1, max=100),
    overwrite: bool = typer.Option(False, "--overwrite/--no-overwrite"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Crop one image to a fixed aspect ratio and export it with its metadata."""
    _setup_logging(log_level)
    cfg = load_config()
    t0 = time.perf_counter()

    try:
        ext = _resolve_output_format(output_format)
        display_size = _parse_display(display)
    except ValueError as exc:
        _fail(str(exc))

    gps_value = None
    if gps:
        gps_value = parse_coordinate_text(gps)
        if gps_value is None:
            _fail(f"invalid GPS coordinates: {gps!r}")

    session = ViewportSession(
        aspect=AspectRatio.from_label(aspect or cfg["aspect"]),
        quality=QualityTier.from_label(quality or cfg["quality"]),
        display_size=display_size,
        zoom_mode=(zoom_mode or cfg["zoom_mode"]).lower(),
        overrides=ExportOverrides(software=cfg["software"], editor=cfg["editor"]),
        jpeg_quality=int(jpeg_quality if jpeg_quality is not None else cfg["jpeg_quality"]),
    )
    try:
        session.load_file(file)
        if flip:
            session.flip_horizontal()
        for _ in range(abs(rotate) % 4):
            session.rotate90(clockwise=rotate > 0)
        if angle:
            session.rotate_arbitrary(angle)
        for _ in range(abs(zoom_steps)):
            if not session.step_zoom(zoom_out=zoom_steps > 0):
                break
        if pan_x or pan_y:
            session.pan(pan_x, pan_y)
        if clear_gps:
            session.clear_gps()
        if gps_value is not None:
            session.set_gps(*gps_value)

        out_dir = out or Path(cfg["storage_folder"])
        name = build_output_name(file, extension=ext)
        saved, skipped, result = session.save(out_dir, name=name, overwrite=overwrite)
    except (PhotoCropError, ValueError, OSError) as exc:
        _fail(f"Crop failed: {exc}")
    finally:
        session.close()

    if result.upscaled:
        typer.secho(
            f"Warning: crop {result.crop_rect.width}x{result.crop_rect.height} was upscaled.",
            fg=typer.colors.YELLOW,
        )
    if skipped:
        LOGGER.info("skipped metadata tags: %s", ", ".join(f"{ifd}:{tag_id:#06x}" for ifd, tag_id in skipped))
    LOGGER.info("OK   %s -> %s  (%.2fs)", file.name, saved.name, time.perf_counter() - t0)
    typer.echo(str(saved))


@app.command("inspect")
def inspect_file(
    file: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
    address: bool = typer.Option(False, "--address", help="Reverse geocode the GPS position."),
    raw: bool = typer.Option(False, "--raw", help="Include every tag payload."),
) -> None:
    from photocrop.decoders.image_decoder import decode_image
    from photocrop.meta.store import MetadataStore

    try:
        source = decode_image(file)
    except PhotoCropError as exc:
        _fail(f"Decode failed: {exc}")

    store = MetadataStore(source.tags)
    gps = store.gps
    payload: dict[str, Any] = {
        "file": str(file),
        "width": source.width,
        "height": source.height,
        "tag_count": len(store),
        "gps": {"lat": gps[0], "lon": gps[1]} if gps else None,
    }
    if address and gps:
        cfg = load_config()
        payload["address"] = resolve_address(gps[0], gps[1], timeout=float(cfg["geocode_timeout"]))
    if raw:
        payload["tags"] = [
            {
                "ifd": tag.ifd,
                "id": f"{tag.tag_id:#06x}",
                "type": tag.type_code,
                "value": _tag_value(tag),
            }
            for tag in store
        ]
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    path = write_default_config(force=force)
    typer.echo(f"Config initialized: {path}")


@app.command()
def gui(
    file: Path | None = typer.Option(
        None,
        "--file",
        exists=True,
        resolve_path=True,
        dir_okay=False,
        help="Open this image file on startup.",
    ),
) -> None:
    try:
        from photocrop.gui import launch_gui
    except Exception as exc:
        typer.secho(f"GUI is unavailable: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)

    try:
        launch_gui(startup_files=[file] if file else None)
    except Exception as exc:
        typer.secho(f"GUI failed to start: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
