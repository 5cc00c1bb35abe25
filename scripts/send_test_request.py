import argparse
import base64
import json
from pathlib import Path
from typing import Any, Dict, Optional

import requests


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Send a test payload to the QR generation endpoint."
    )
    parser.add_argument("content", help="Text or URL to encode.")
    parser.add_argument(
        "--type",
        choices=("text", "url", "logo", "background"),
        default="text",
        help="QR code type (default: text).",
    )
    parser.add_argument(
        "--size", type=int, default=512, help="Image size in pixels (default: 512)."
    )
    parser.add_argument("--color", default="#000000", help="Module color.")
    parser.add_argument("--background-color", default="#ffffff", help="Quiet zone color.")
    parser.add_argument("--logo", type=Path, help="Logo image for --type logo.")
    parser.add_argument(
        "--bg-image", type=Path, help="Background photo for --type background."
    )
    parser.add_argument("--center-text", help="Text drawn on a badge in the middle.")
    parser.add_argument("--center-text-color", default="#000000")
    parser.add_argument("--center-text-size", type=int, default=24)
    parser.add_argument("--center-text-bold", action="store_true")
    parser.add_argument(
        "--host",
        default="http://127.0.0.1:5000",
        help="Server host (default: http://127.0.0.1:5000).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("qrcode.png"),
        help="Path to save the QR code image (default: qrcode.png).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the payload instead of sending the request.",
    )
    return parser.parse_args()


def encode_file(path: Optional[Path]) -> Optional[str]:
    if path is None:
        return None
    return base64.b64encode(path.read_bytes()).decode("ascii")


def build_payload(args: argparse.Namespace) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "type": args.type,
        "size": args.size,
        "color": args.color,
        "backgroundColor": args.background_color,
    }
    if args.type == "url" or (
        args.type in ("logo", "background") and args.content.startswith(("http://", "https://"))
    ):
        payload["url"] = args.content
    else:
        payload["text"] = args.content

    logo = encode_file(args.logo)
    if logo:
        payload["logo"] = logo
    bg_image = encode_file(args.bg_image)
    if bg_image:
        payload["bgImage"] = bg_image

    if args.center_text:
        payload.update(
            {
                "centerText": args.center_text,
                "centerTextColor": args.center_text_color,
                "centerTextSize": args.center_text_size,
                "centerTextBold": args.center_text_bold,
            }
        )
    return payload


def _redact(payload: Dict[str, Any]) -> Dict[str, Any]:
    shown = dict(payload)
    for key in ("logo", "bgImage"):
        if key in shown:
            shown[key] = f"<{len(shown[key])} base64 chars>"
    return shown


def main() -> None:
    args = parse_args()
    payload = build_payload(args)

    if args.dry_run:
        print(json.dumps(_redact(payload), indent=2))
        return

    response = requests.post(
        f"{args.host.rstrip('/')}/api/generate-qr",
        json=payload,
        timeout=30,
    )

    print(f"Status: {response.status_code}")
    if response.headers.get("Content-Type", "").startswith("application/json"):
        print(json.dumps(response.json(), indent=2))
    response.raise_for_status()

    args.output.write_bytes(response.content)
    print(f"Saved QR code to {args.output.resolve()}")


if __name__ == "__main__":
    main()
