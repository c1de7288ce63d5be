"""
Contact Capture - Entry Point

Command-line front-end for assembling one contact record from QR codes,
business card photos, dictated notes and manual edits. The record is
persisted between invocations.

Example:
    python main.py scan --camera 0
    python main.py card photo.jpg --crop
    python main.py dictate "Interested in the 2027 catalogue"
    python main.py show
    python main.py config --set debounce_ms=500
"""

import sys
import asyncio
import logging
import argparse
import json
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image

from contact_capture import ContactStore, JsonFileStorage, CaptureSession
from contact_capture.errors import CaptureError
from contact_capture.record import ContactRecord, FIELDS
from contact_capture.scanner import CameraCapture, ScreenCapture, RegionOfInterest
from contact_capture.settings import load_settings, save_settings, set_setting


# Configure logging - output to both console and file
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
    handlers=[
        logging.StreamHandler(),  # Console output
        logging.FileHandler("capture.log", mode='a', encoding='utf-8')  # File output
    ]
)
logger = logging.getLogger(__name__)


def print_record(record: ContactRecord) -> None:
    """Print the record, one field per line."""
    if record.is_empty():
        print("No contact information captured yet")
        return
    for field in FIELDS:
        value = getattr(record, field)
        if value:
            print(f"{field.capitalize():<9} {value}")


def parse_roi(value: Optional[str]) -> Optional[RegionOfInterest]:
    """Parse 'x,y,w,h' into a RegionOfInterest."""
    if not value:
        return None
    try:
        x, y, w, h = (float(v) for v in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid ROI '{value}', expected x,y,w,h")
    return RegionOfInterest(x, y, w, h)


def parse_size(value: Optional[str]) -> Optional[Tuple[float, float]]:
    """Parse 'WxH' into a (width, height) tuple."""
    if not value:
        return None
    try:
        w, h = (float(v) for v in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid size '{value}', expected WxH")
    return w, h


async def run_command(args, session: CaptureSession) -> int:
    """Dispatch a parsed command. Returns the exit code."""
    if args.command == "show":
        pass

    elif args.command == "payload":
        if args.file:
            text = Path(args.file).read_text(encoding="utf-8")
        elif args.text:
            text = args.text
        else:
            text = sys.stdin.read()
        session.ingest_payload(text)

    elif args.command == "qr-image":
        if session.scan_qr_image(Image.open(args.image)) is None:
            return 1

    elif args.command == "scan":
        source = ScreenCapture() if args.screen else CameraCapture(args.camera)
        record = await session.scan_qr(
            source,
            roi=args.roi,
            display_size=args.display,
            timeout=args.timeout,
        )
        if record is None:
            return 1

    elif args.command == "card":
        image = Image.open(args.image)
        if args.crop:
            image = session.preprocessor.crop_to_aspect(
                image,
                session.settings["card_aspect_ratio"],
                session.settings["card_max_width"],
            )
        if await session.process_card(image) is None:
            return 1

    elif args.command == "camera-card":
        image = await session.capture_card(CameraCapture(args.camera))
        if args.save:
            image.save(args.save)
        if await session.process_card(image) is None:
            return 1

    elif args.command == "dictate":
        session.ingest_dictation(" ".join(args.text))

    elif args.command == "edit":
        fields = {f: getattr(args, f) for f in FIELDS if getattr(args, f) is not None}
        if not fields:
            print("Nothing to edit")
            return 1
        session.manual_edit(**fields)

    elif args.command == "reset":
        session.reset()

    print_record(session.store.get())
    return 0


def run_config(args, settings: dict) -> int:
    """Apply --set KEY=VALUE pairs, save them, and print the settings."""
    for item in args.set or []:
        key, sep, value = item.partition("=")
        if not sep:
            logger.error(f"Invalid setting '{item}', expected KEY=VALUE")
            return 1
        try:
            set_setting(settings, key.strip(), value.strip())
        except KeyError:
            logger.error(f"Unknown setting: {key.strip()}")
            return 1

    if args.set:
        save_settings(settings, args.config)
    print(json.dumps(settings, indent=2))
    return 0


async def run(args) -> int:
    """Build the session from settings and run one command."""
    settings = load_settings(args.config)
    if args.command == "config":
        return run_config(args, settings)

    if args.debug:
        settings["debug_enabled"] = True
        logging.getLogger().setLevel(logging.DEBUG)

    store = ContactStore(JsonFileStorage(settings["storage_path"]))
    store.load()
    session = CaptureSession(store, settings, on_status=lambda msg: print(f"> {msg}"))

    try:
        return await run_command(args, session)
    except CaptureError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    finally:
        await session.close()


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Contact Capture - assemble a contact from QR, card OCR, voice and manual input"
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Settings file (default: config.json)"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug mode (verbose logs, save debug images)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Print the current record")

    p = sub.add_parser("payload", help="Ingest a vCard or QR text payload")
    p.add_argument("text", nargs="?", help="Payload text (default: stdin)")
    p.add_argument("--file", "-f", help="Read the payload from a file")

    p = sub.add_parser("qr-image", help="Decode a QR code from an image file")
    p.add_argument("image")

    p = sub.add_parser("scan", help="Scan a QR code from a live source")
    p.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    p.add_argument("--screen", action="store_true", help="Scan the primary screen instead")
    p.add_argument("--roi", type=parse_roi, help="Scan box in display coordinates: x,y,w,h")
    p.add_argument("--display", type=parse_size, help="Display area size for --roi: WxH")
    p.add_argument("--timeout", type=float, default=60.0, help="Seconds before giving up")

    p = sub.add_parser("card", help="OCR a business card image file")
    p.add_argument("image")
    p.add_argument("--crop", action="store_true", help="Crop to business-card aspect first")

    p = sub.add_parser("camera-card", help="Capture a business card from a camera and OCR it")
    p.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    p.add_argument("--save", help="Also save the captured card image")

    p = sub.add_parser("dictate", help="Append dictated notes")
    p.add_argument("text", nargs="+")

    p = sub.add_parser("edit", help="Manually set fields (overwrites)")
    for field in FIELDS:
        p.add_argument(f"--{field}")

    sub.add_parser("reset", help="Clear the record and its persisted copy")

    p = sub.add_parser("config", help="Show or change settings")
    p.add_argument(
        "--set", "-s",
        action="append",
        metavar="KEY=VALUE",
        help="Set a setting (repeatable), e.g. debounce_ms=500 or preference_scores.home=95"
    )

    return parser.parse_args(argv)


def main():
    """Initialize and run Contact Capture."""
    args = parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
