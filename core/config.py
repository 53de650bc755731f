import os
import logging
from dotenv import load_dotenv
from botocore.client import Config as BotoConfig
import boto3

# Load .env from project root
try:
    load_dotenv(dotenv_path=os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".env")))
except Exception:
    load_dotenv()


def _clean(value: str) -> str:
    return (value or "").strip().strip('"').strip("'").strip('`')


# Build info
APP_VERSION = _clean(os.getenv("APP_VERSION", "")) or "DEV"
APP_NAME = os.getenv("APP_NAME", "FeriaDeOfertas")

# Frontend origin used for public share links (first entry wins)
FRONTEND_ORIGIN = (_clean(os.getenv("FRONTEND_ORIGIN", "")).split(",")[0].strip() or "http://localhost:5173").rstrip("/")

# Object storage (S3-compatible, Cloudflare R2)
R2_ENDPOINT = _clean(os.getenv("R2_ENDPOINT", "")).rstrip("/")
R2_BUCKET = _clean(os.getenv("R2_BUCKET", ""))
R2_ACCESS_KEY_ID = _clean(os.getenv("R2_ACCESS_KEY_ID", ""))
R2_SECRET_ACCESS_KEY = _clean(os.getenv("R2_SECRET_ACCESS_KEY", ""))
R2_PUBLIC_DOMAIN = _clean(os.getenv("R2_PUBLIC_DOMAIN", "")).rstrip("/")  # e.g. https://pub-xxxx.r2.dev

UPLOAD_URL_TTL_SEC = 10 * 60
DOWNLOAD_URL_TTL_SEC = 60 * 60

# Hosted chat-completion model used by magic fill (Azure OpenAI)
AZURE_OPENAI_KEY = _clean(os.getenv("AZURE_OPENAI_KEY", ""))
AZURE_OPENAI_RESOURCE = _clean(os.getenv("AZURE_OPENAI_RESOURCE", ""))
AZURE_OPENAI_DEPLOYMENT = _clean(os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4o-mini"))
AZURE_OPENAI_API_VERSION = _clean(os.getenv("AZURE_OPENAI_API_VERSION", "2024-04-01-preview"))

# Wallet app deep link (mobile scheme, desktop fallback)
WALLET_APP_SCHEME = _clean(os.getenv("WALLET_APP_SCHEME", "mercadopago://"))
WALLET_WEB_URL = _clean(os.getenv("WALLET_WEB_URL", "https://www.mercadopago.com.ar"))

# Catalog limits
MAX_IMAGES_PER_PRODUCT = int(os.getenv("MAX_IMAGES_PER_PRODUCT", "10"))
MAX_IMAGE_SIZE = int(os.getenv("MAX_IMAGE_SIZE_MB", "10")) * 1024 * 1024
DIAGNOSTIC_LOG_CAPACITY = 50

# Logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
logger = logging.getLogger("feria")
logger.setLevel(logging.INFO)

# S3/R2 client used for presigned URLs and bucket administration
s3 = None

if R2_ENDPOINT and R2_BUCKET and R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY:
    s3 = boto3.client(
        "s3",
        endpoint_url=R2_ENDPOINT,
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        # Path-style avoids DNS issues with bucket subdomains on R2
        config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
        region_name="auto",
    )
else:
    logger.warning("Object storage not configured (R2_ENDPOINT/R2_BUCKET/R2_ACCESS_KEY_ID/R2_SECRET_ACCESS_KEY)")
