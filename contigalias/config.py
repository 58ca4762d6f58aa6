"""Data source configuration constants."""

import os
import tempfile

ENA_FTP_HOST = "ftp.ebi.ac.uk"
ENA_HTTPS_BASE = "https://ftp.ebi.ac.uk"
ENA_ASSEMBLY_ROOT = "/pub/databases/ena/assembly"

# Sequence report file name: <accession><suffix>
REPORT_SUFFIX = "_sequence_report.txt"

# Retry configuration for a whole report download
MAX_ATTEMPTS = 5
RETRY_DELAY = 2.0  # seconds before the second attempt
RETRY_MULTIPLIER = 2.0

# Transport settings
FTP_TIMEOUT = 60
HTTP_TIMEOUT = 60
HTTP_RETRIES = 2  # 5xx retries inside a single attempt
HTTP_BACKOFF = 1.0
BLOCK_SIZE = 64 * 1024

TRANSPORTS = ("ftp", "https")

# Downloaded reports are written under a per-call directory inside this one
DOWNLOAD_DIR = os.environ.get("CONTIGALIAS_DOWNLOAD_DIR", tempfile.gettempdir())
