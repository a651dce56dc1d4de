import os

from dotenv import load_dotenv

# ---------------- LOAD SECRETS ----------------
load_dotenv()


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


class Config:
    MASTER_KEY = os.getenv("MASTER_KEY")
    ISSUER_SECRET = os.getenv("ISSUER_SECRET")
    ISSUER_NAME = os.getenv("ISSUER_NAME", "Event Certification Authority")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///certchain.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SEED_PATH = os.getenv("SEED_PATH")

    LEDGER_PATH = os.getenv("LEDGER_PATH")
    LEDGER_NETWORK = os.getenv("LEDGER_NETWORK", "localhost")
    LEDGER_BLOCK_TIME = _float_env("LEDGER_BLOCK_TIME", 0.0)
    LEDGER_CONFIRMATION_TIMEOUT = _float_env("LEDGER_CONFIRMATION_TIMEOUT", 30.0)
    CONTRACT_INFO_PATH = os.getenv("CONTRACT_INFO_PATH", "contract-info.json")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "console")

    PORT = int(os.getenv("PORT", "3000"))


REQUIRED_SECRETS = ("MASTER_KEY", "ISSUER_SECRET")
