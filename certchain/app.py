import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import click
import structlog
from cryptography.fernet import Fernet
from flask import Blueprint, Flask, current_app, jsonify, request, send_file
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .audit import read_events, record_event
from .blockchain import CertificateRegistry
from .config import REQUIRED_SECRETS, Config
from .coordinator import CertificateCoordinator
from .crypto_utils import decrypt, encrypt, get_cipher
from .database import Event, Issuer, db
from .errors import CertificateServiceError
from .ledger_client import LedgerClient
from .oracle import DatabaseOracle, load_seed, seed_database
from .rendering import render_certificate_pdf, render_qr
from .telemetry import configure_logging

log = structlog.get_logger("certchain.app")

api = Blueprint("api", __name__)


@dataclass
class Services:
    cipher: Fernet
    registry: CertificateRegistry
    ledger: LedgerClient
    oracle: DatabaseOracle
    coordinator: CertificateCoordinator


def services() -> Services:
    return current_app.extensions["certchain"]


def _as_bytes(value) -> bytes:
    return value if isinstance(value, bytes) else str(value).encode()


# ---------------- APP FACTORY ----------------
def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    missing = [name for name in REQUIRED_SECRETS if not app.config.get(name)]
    if missing:
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")

    configure_logging(app.config["LOG_LEVEL"], app.config["LOG_FORMAT"])
    CORS(app)
    db.init_app(app)

    registry = CertificateRegistry(
        _as_bytes(app.config["ISSUER_SECRET"]),
        path=app.config["LEDGER_PATH"],
        block_time=app.config["LEDGER_BLOCK_TIME"],
    )
    ledger = LedgerClient(registry, confirmation_timeout=app.config["LEDGER_CONFIRMATION_TIMEOUT"])
    oracle = DatabaseOracle()
    app.extensions["certchain"] = Services(
        cipher=get_cipher(_as_bytes(app.config["MASTER_KEY"])),
        registry=registry,
        ledger=ledger,
        oracle=oracle,
        coordinator=CertificateCoordinator(oracle, ledger),
    )

    with app.app_context():
        db.create_all()
        ensure_seeded(app.config["SEED_PATH"])
        ensure_issuer_exists(app.config["ISSUER_NAME"], registry.signer)

    app.register_blueprint(api)
    register_error_handlers(app)
    register_commands(app)
    return app


# ---------------- STARTUP DATA ----------------
def ensure_seeded(seed_path=None):
    if Event.query.first() is None:
        seed_database(load_seed(seed_path))


def ensure_issuer_exists(name, address):
    issuer = Issuer.query.filter_by(address=address).first()
    if not issuer:
        issuer = Issuer(encrypted_name=encrypt(name, services().cipher), address=address)
        db.session.add(issuer)
        db.session.commit()
    return issuer


def issuer_display_name(address):
    issuer = Issuer.query.filter_by(address=address).first()
    if not issuer:
        return "Unknown issuer"
    return decrypt(issuer.encrypted_name, services().cipher)


def audit(action, details):
    # Runs after ledger confirmation; write failures are logged, not returned.
    try:
        record_event(action, details, services().cipher)
    except SQLAlchemyError:
        db.session.rollback()
        log.exception("audit_write_failed", action=action, **details)


# ---------------- HEALTH ----------------
@api.get("/health")
def health():
    return jsonify({"status": "API is running", "timestamp": datetime.now(timezone.utc).isoformat()})


# ---------------- ORACLE DATA ----------------
@api.get("/api/events")
def list_events():
    events = services().oracle.list_events()
    return jsonify({"success": True, "data": [event.to_dict() for event in events]})


@api.get("/api/events/<int:event_id>/participants")
def list_participants(event_id):
    participants = services().oracle.list_participants(event_id)
    return jsonify({"success": True, "data": [p.to_dict() for p in participants]})


# ---------------- ISSUE ----------------
@api.post("/api/certificates/issue")
def issue_certificate():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}

    result = services().coordinator.issue(
        body.get("recipientName"), body.get("eventName"), body.get("issueDate")
    )
    audit(
        "issue",
        {
            "certificateHash": result.identifier,
            "transactionHash": result.transaction_ref,
            "blockNumber": result.block_ref,
        },
    )
    return jsonify(
        {
            "success": True,
            "message": "Certificate issued successfully",
            "data": result.to_dict(),
        }
    )


# ---------------- VERIFY ----------------
@api.get("/api/certificates/verify/<certificate_hash>")
def verify_certificate(certificate_hash):
    result = services().coordinator.verify(certificate_hash)

    if not result.is_valid:
        return jsonify(
            {
                "success": False,
                "message": "Certificate not found or invalid",
                "status": result.status,
            }
        )

    return jsonify({"success": True, "message": "Certificate is valid", "data": result.to_dict()})


# ---------------- REVOKE ----------------
@api.post("/api/certificates/revoke/<certificate_hash>")
def revoke_certificate(certificate_hash):
    result = services().coordinator.revoke(certificate_hash)

    if result.already_revoked:
        message = "Certificate already revoked"
    else:
        message = "Certificate revoked successfully"
        audit("revoke", {"certificateHash": result.identifier, "transactionHash": result.transaction_ref})

    return jsonify({"success": True, "message": message, "data": result.to_dict()})


# ---------------- CONTRACT INFO ----------------
@api.get("/api/contract-info")
def contract_info():
    ledger = services().ledger
    return jsonify(
        {
            "success": True,
            "data": {
                "address": ledger.address,
                "network": current_app.config["LEDGER_NETWORK"],
                "blockNumber": ledger.block_number,
            },
        }
    )


# ---------------- QR ----------------
@api.get("/api/certificates/<certificate_hash>/qr")
def certificate_qr(certificate_hash):
    url = request.host_url + f"api/certificates/verify/{certificate_hash}"
    return send_file(render_qr(url), mimetype="image/png")


# ---------------- PDF ----------------
@api.get("/api/certificates/<certificate_hash>/pdf")
def certificate_pdf(certificate_hash):
    certificate = services().ledger.verify(certificate_hash)
    if not certificate.exists:
        return jsonify({"success": False, "error": "Certificate not found"}), 404

    buffer = render_certificate_pdf(certificate, issuer_display_name(certificate.issuer))
    return send_file(
        buffer,
        as_attachment=True,
        download_name=f"{certificate_hash}.pdf",
        mimetype="application/pdf",
    )


# ---------------- ERRORS ----------------
def register_error_handlers(app):
    @app.errorhandler(CertificateServiceError)
    def handle_service_error(error):
        if error.status_code >= 500:
            log.error("request_failed", kind=error.kind, error=error.message, path=request.path)
        else:
            log.info("request_rejected", kind=error.kind, error=error.message, path=request.path)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code is None or error.code < 400:
            return error
        return jsonify({"success": False, "error": error.description}), error.code


# ---------------- CLI ----------------
def register_commands(app):
    @app.cli.command("seed-db")
    @click.option("--path", "seed_path", default=None, help="Seed JSON file.")
    def seed_db_command(seed_path):
        """Replace the oracle's events and participants with seed data."""
        seed_database(load_seed(seed_path or current_app.config["SEED_PATH"]), replace=True)
        click.echo("Oracle seed loaded.")

    @app.cli.command("deploy-registry")
    def deploy_registry_command():
        """Write the registry's contract info for API clients."""
        ledger = services().ledger
        services().registry.verify_integrity()
        info = {"address": ledger.address, "network": current_app.config["LEDGER_NETWORK"]}
        Path(current_app.config["CONTRACT_INFO_PATH"]).write_text(json.dumps(info, indent=2))
        click.echo(f"Registry deployed to: {ledger.address}")

    @app.cli.command("audit-log")
    def audit_log_command():
        """Print the decrypted audit trail."""
        for event in read_events(services().cipher):
            click.echo(json.dumps(event))


def main():
    app = create_app()
    log.info("api_started", url=f"http://localhost:{app.config['PORT']}")
    app.run(port=app.config["PORT"], threaded=True)


if __name__ == "__main__":
    main()
