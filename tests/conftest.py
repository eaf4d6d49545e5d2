"""
Test environment. Runs before any svmms module is imported so the cached
settings pick these values up.
"""
import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="svmms-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'svmms.db')}"
os.environ["JWT_SECRET"] = "test-secret-key-for-svmms-tests-0123456789"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-for-svmms-tests-0123"
os.environ["ENVIRONMENT"] = "development"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
