# backend/vendix/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Embedded backend: SQLite DB stored next to the instance folder by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///vendix.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # auto | embedded | document
    # auto picks the embedded backend when the database driver can be loaded.
    STORAGE_MODE = os.environ.get("VENDIX_STORAGE_MODE", "auto")

    # Document-store backend: one JSON file, or ":memory:" to keep it in-process
    DOCUMENT_STORE_PATH = os.environ.get("VENDIX_DOCUMENT_STORE", "vendix.store.json")

    # Seconds a writer waits on a locked SQLite file before giving up
    SQLITE_BUSY_TIMEOUT = float(os.environ.get("VENDIX_SQLITE_BUSY_TIMEOUT", "10"))

    # Fixed offset applied to UTC timestamps for every day/month bucket (UTC-5)
    REPORT_UTC_OFFSET_MINUTES = int(os.environ.get("VENDIX_REPORT_UTC_OFFSET_MINUTES", "-300"))

    LOW_STOCK_THRESHOLD = float(os.environ.get("VENDIX_LOW_STOCK_THRESHOLD", "5"))

    # None -> built-in master key
    LICENSE_MASTER_KEY = os.environ.get("VENDIX_LICENSE_MASTER_KEY")
