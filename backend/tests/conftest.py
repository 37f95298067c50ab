"""Test settings are read at import time, so they are set here before the app loads."""
import os
import tempfile

os.environ["PIXELDETECT_STORAGE_ROOT"] = tempfile.mkdtemp(prefix="pixeldetect-tests-")
os.environ["ANALYSIS_DELAY_SECONDS"] = "0"
os.environ["ANALYSIS_TIMEOUT_SECONDS"] = "5"
os.environ["EMAIL_MODE"] = "console"
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-at-least-32-bytes")
