import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from giftguide.assets import attachment_filename
from giftguide.core import GiftGuidePipeline
from giftguide.settings import load_settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate a branded gift guide PDF for a company and optionally email it."
    )
    parser.add_argument("--company-name", required=True, help="Company display name.")
    parser.add_argument("--domain", required=True, help="Company domain, e.g. nike.com.")
    parser.add_argument("--recipient-email", required=True, help="Where to send the guide.")
    parser.add_argument("--ae-name", required=True, help="Account executive name.")
    parser.add_argument("--ae-email", required=True, help="Account executive email.")
    parser.add_argument("--ae-phone", required=True, help="Account executive phone.")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Where to write the PDF (default: outputs/<Company>-Gift-Guide.pdf).",
    )
    parser.add_argument(
        "--html-output",
        type=Path,
        default=None,
        help="Optionally also write the composed HTML here.",
    )
    return parser.parse_args()


def main() -> int:
    # Load environment variables from a local .env file if present
    # (e.g. RESEND_API_KEY=re_...).
    load_dotenv()

    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )

    args = parse_args()
    pipeline = GiftGuidePipeline.from_settings(load_settings())

    outcome = pipeline.run(
        {
            "companyName": args.company_name,
            "domain": args.domain,
            "recipientEmail": args.recipient_email,
            "aeName": args.ae_name,
            "aeEmail": args.ae_email,
            "aePhone": args.ae_phone,
        }
    )

    if not outcome.success:
        print(f"Error: {outcome.error}", file=sys.stderr)
        if outcome.stack:
            print(outcome.stack, file=sys.stderr)
        return 1

    output = args.output or Path("outputs") / attachment_filename(outcome.company_name or args.company_name)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(outcome.document or b"")

    if args.html_output and outcome.html_preview is not None:
        args.html_output.parent.mkdir(parents=True, exist_ok=True)
        args.html_output.write_text(outcome.html_preview, encoding="utf-8")

    print(outcome.message)
    print(f"PDF written to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
