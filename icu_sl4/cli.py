#!/usr/bin/env python3
"""
ICU SL4 Command Line Interface

Usage:
    icu-sl4 decide --input <file> --policy <file> --keypair <file> --out <file> [--ledger <file>]
    icu-sl4 verify --decision <file> [--input <file>] [--policy <file>]
    icu-sl4 gen-key --out <file>
    icu-sl4 hash --file <file>
    icu-sl4 ledger-verify --ledger <file>
    icu-sl4 report --decision <file> --keypair <file> --out <file>

Exit codes: 0 ok, 1 verification failed, 2 bad input, 3 channel divergence,
4 I/O error.
"""

import argparse
import json
import sys
from pathlib import Path

from . import config
from .errors import (
    DivergenceError,
    InputFormatError,
    LedgerIOError,
    SignatureVerificationError,
    SL4Error,
)
from .logging_config import configure_logging
from .util import utc_now_rfc3339


EXIT_OK = 0
EXIT_VERIFY_FAILED = 1
EXIT_USAGE = 2
EXIT_DIVERGENCE = 3
EXIT_IO = 4


def load_json(path: str):
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise InputFormatError(f"{path}: invalid JSON: {e}") from e


def save_json(data: dict, path: str):
    """Save JSON to file."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def cmd_decide(args):
    """Make a signed decision for one observation."""
    from .engine import decide
    from .ledger import append
    from .models import Input
    from .policy import load_policy_yaml
    from .signing import KeyPair

    inp = Input.from_dict(load_json(args.input))
    policy = load_policy_yaml(args.policy)
    keypair = KeyPair.from_key_file(args.keypair)
    decision_time = args.decision_time or utc_now_rfc3339()
    config_hash = args.config_hash or config.effective_config_hash()

    outcome = decide(inp, policy, args.binary_hash, config_hash, keypair, decision_time)
    document = outcome.to_dict()

    ledger_path = args.ledger or config.LEDGER_PATH
    if ledger_path:
        document["ledger_block_hash"] = append(ledger_path, outcome.to_dict())

    save_json(document, args.out)
    print(f"Wrote decision to {args.out}")
    print(f"Severity: {outcome.ast.severity.value}", file=sys.stderr)
    return EXIT_OK


def cmd_verify(args):
    """Verify a decision file's signature and hashes."""
    from .models import Input
    from .policy import load_policy_yaml
    from .verifier import verify_decision

    document = load_json(args.decision)
    inp = Input.from_dict(load_json(args.input)) if args.input else None
    policy = load_policy_yaml(args.policy) if args.policy else None

    result = verify_decision(document, input=inp, policy=policy)

    if result.is_valid():
        print("✓ Signature valid")
        return EXIT_OK
    else:
        print(f"✗ INVALID: {result.reason}")
        if result.details:
            print(json.dumps(result.details, indent=2))
        return EXIT_VERIFY_FAILED


def cmd_gen_key(args):
    """Generate a random Ed25519 secret key file."""
    from .signing import generate_secret_hex

    save_json({"secret_hex": generate_secret_hex()}, args.out)
    print(f"Wrote keypair secret to {args.out}")
    return EXIT_OK


def cmd_hash(args):
    """Compute the content identifier of a JSON document or YAML policy."""
    from .hashing import document_hash
    from .policy import load_policy_yaml

    if Path(args.file).suffix.lower() in (".yaml", ".yml"):
        print(f"policy_hash: {load_policy_yaml(args.file).get_hash()}")
    else:
        print(f"document_hash: {document_hash(load_json(args.file))}")
    return EXIT_OK


def cmd_ledger_verify(args):
    """Re-hash every record of a ledger file."""
    from .ledger import verify_ledger

    report = verify_ledger(args.ledger)
    print(json.dumps(report.to_dict(), indent=2))
    return EXIT_OK if report.is_valid() else EXIT_VERIFY_FAILED


def cmd_report(args):
    """Render a signed PDF proof report for a decision file."""
    from .report import render_report
    from .signing import KeyPair

    result = render_report(args.decision, KeyPair.from_key_file(args.keypair), args.out)
    print(f"Wrote report to {result.pdf_path}")
    print(f"Wrote signature to {result.sig_path}")
    return EXIT_OK


def exit_code_for(error: Exception) -> int:
    if isinstance(error, DivergenceError):
        return EXIT_DIVERGENCE
    if isinstance(error, SignatureVerificationError):
        return EXIT_VERIFY_FAILED
    if isinstance(error, (LedgerIOError, OSError)):
        return EXIT_IO
    return EXIT_USAGE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="icu-sl4",
        description="Deterministic dual-channel ICU decision engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  icu-sl4 gen-key --out secrets/key.json
  icu-sl4 decide --input fixtures/input_critical.json --policy policies/hypoxemia_acute.yaml \\
                 --keypair secrets/key.json --out out/decision.json --ledger out/ledger.ndjson
  icu-sl4 verify --decision out/decision.json
  icu-sl4 report --decision out/decision.json --keypair secrets/key.json --out out/decision.pdf
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # decide
    decide_parser = subparsers.add_parser("decide", help="Make a deterministic decision")
    decide_parser.add_argument("--input", required=True, help="Input JSON file")
    decide_parser.add_argument("--policy", required=True, help="Policy YAML file")
    decide_parser.add_argument("--keypair", required=True, help='Key file {"secret_hex": "<64 hex>"}')
    decide_parser.add_argument("--binary-hash", default=config.BINARY_HASH, help="Build identifier")
    decide_parser.add_argument("--config-hash", help="Configuration identifier")
    decide_parser.add_argument("--decision-time", help="RFC 3339 decision time (default: now)")
    decide_parser.add_argument("--out", required=True, help="Output decision JSON file")
    decide_parser.add_argument("--ledger", help="Append the decision to this NDJSON ledger")

    # verify
    verify_parser = subparsers.add_parser("verify", help="Verify a decision file")
    verify_parser.add_argument("--decision", required=True, help="Decision JSON file")
    verify_parser.add_argument("--input", help="Original input JSON file")
    verify_parser.add_argument("--policy", help="Policy YAML file")

    # gen-key
    genkey_parser = subparsers.add_parser("gen-key", help="Generate an Ed25519 secret key file")
    genkey_parser.add_argument("--out", required=True, help="Output key file")

    # hash
    hash_parser = subparsers.add_parser("hash", help="Compute a content identifier")
    hash_parser.add_argument("--file", required=True, help="JSON document or YAML policy")

    # ledger-verify
    lv_parser = subparsers.add_parser("ledger-verify", help="Check every ledger record hash")
    lv_parser.add_argument("--ledger", required=True, help="NDJSON ledger file")

    # report
    report_parser = subparsers.add_parser("report", help="Render a signed PDF proof report")
    report_parser.add_argument("--decision", required=True, help="Decision JSON file")
    report_parser.add_argument("--keypair", required=True, help="Key file")
    report_parser.add_argument("--out", required=True, help="Output PDF file")

    return parser


COMMANDS = {
    "decide": cmd_decide,
    "verify": cmd_verify,
    "gen-key": cmd_gen_key,
    "hash": cmd_hash,
    "ledger-verify": cmd_ledger_verify,
    "report": cmd_report,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return EXIT_USAGE

    configure_logging(level=config.LOG_LEVEL, json_format=config.LOG_JSON)

    try:
        return COMMANDS[args.command](args)
    except (SL4Error, OSError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return exit_code_for(e)


if __name__ == "__main__":
    sys.exit(main())
