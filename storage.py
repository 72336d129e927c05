"""
storage.py - archive of exported CSV reports, on S3 when S3_BUCKET is set
and under PESITOS_DATA_DIR/reports otherwise.
"""

import logging
import os
from io import BytesIO
from pathlib import Path

import boto3
import pandas as pd
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

REPORTS_FOLDER = "reports"

S3_BUCKET = os.environ.get("S3_BUCKET") or None
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
LOCAL_ROOT = Path(os.environ.get("PESITOS_DATA_DIR", "."))


def get_s3_client():
    return boto3.client("s3", region_name=AWS_REGION)


def _report_bytes(report: bytes | pd.DataFrame) -> bytes:
    if isinstance(report, pd.DataFrame):
        buffer = BytesIO()
        report.to_csv(buffer, index=False)
        return buffer.getvalue()
    return report


def _local_dir() -> Path:
    return LOCAL_ROOT / REPORTS_FOLDER


def archive_report(file_name: str, report: bytes | pd.DataFrame) -> bool:
    """
    Keep a copy of an exported report. Returns False when the upload fails;
    the download offered to the user does not depend on it.
    """
    body = _report_bytes(report)

    if S3_BUCKET:
        key = f"{REPORTS_FOLDER}/{file_name}"
        try:
            get_s3_client().put_object(Bucket=S3_BUCKET, Key=key, Body=body, ContentType="text/csv")
        except Exception as e:
            logger.error("Could not archive %s to s3://%s: %s", key, S3_BUCKET, e)
            return False
        logger.info("Archived report to s3://%s/%s", S3_BUCKET, key)
        return True

    path = _local_dir() / file_name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(body)
    logger.info("Archived report to %s", path)
    return True


def load_report(file_name: str) -> pd.DataFrame | None:
    """Read an archived report back; None when it does not exist."""
    if S3_BUCKET:
        s3 = get_s3_client()
        try:
            obj = s3.get_object(Bucket=S3_BUCKET, Key=f"{REPORTS_FOLDER}/{file_name}")
        except s3.exceptions.NoSuchKey:
            return None
        except Exception as e:
            logger.error("Could not read report %s: %s", file_name, e)
            return None
        return pd.read_csv(obj["Body"])

    path = _local_dir() / file_name
    return pd.read_csv(path) if path.exists() else None


def list_reports() -> list[str]:
    """Archived report names, sorted."""
    if S3_BUCKET:
        try:
            response = get_s3_client().list_objects_v2(Bucket=S3_BUCKET, Prefix=f"{REPORTS_FOLDER}/")
        except Exception as e:
            logger.error("Could not list reports: %s", e)
            return []
        return sorted(obj["Key"].split("/")[-1] for obj in response.get("Contents", []))

    folder = _local_dir()
    if not folder.exists():
        return []
    return sorted(f.name for f in folder.glob("*.csv") if f.is_file())
