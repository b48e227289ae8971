"""
Firebase Admin initialization.
Single-source-of-truth Firestore client for the EcoCheck backend.

The same Firebase app also backs ID-token verification (app.utils.security)
and evidence uploads (app.services.storage).
"""

from typing import Optional
import json
import logging
import os

import firebase_admin
from firebase_admin import credentials, firestore, initialize_app

from app.core.settings import settings

logger = logging.getLogger(__name__)

db: Optional[firestore.Client] = None


def initialize_firebase_app() -> None:
    """Initialize the default Firebase app once, from a service account or ADC."""
    if firebase_admin._apps:
        return

    options = {}
    if settings.FIREBASE_STORAGE_BUCKET:
        options["storageBucket"] = settings.FIREBASE_STORAGE_BUCKET
    if settings.FIREBASE_PROJECT_ID:
        options["projectId"] = settings.FIREBASE_PROJECT_ID

    cred_path = settings.FIREBASE_CREDENTIALS_PATH
    if not cred_path:
        print("[FIRESTORE] No credentials path set, using Application Default Credentials")
        initialize_app(options=options or None)
        return

    if not os.path.exists(cred_path):
        raise RuntimeError(
            f"Firebase credentials file not found: {cred_path}\n"
            f"Check FIREBASE_CREDENTIALS_PATH in your .env file. "
            f"Current working directory: {os.getcwd()}"
        )

    try:
        with open(cred_path, "r") as f:
            cred_data = json.load(f)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Firebase credentials file is not valid JSON: {e}")

    required_fields = ["type", "project_id", "private_key", "client_email"]
    missing_fields = [field for field in required_fields if field not in cred_data]
    if missing_fields:
        raise RuntimeError(
            f"Firebase credentials file is missing required fields: {missing_fields}\n"
            f"Download a fresh service account key from Firebase Console."
        )

    initialize_app(credentials.Certificate(cred_path), options=options or None)
    print(f"[FIRESTORE] Firebase Admin SDK initialized for project {cred_data.get('project_id', 'N/A')}")


def initialize_firestore() -> Optional[firestore.Client]:
    """
    Create the Firestore client.

    Returns None in USE_MOCK_DB mode, where the in-memory store is used instead.
    """
    global db

    if db is not None:
        return db

    if settings.USE_MOCK_DB:
        print("[FIRESTORE] USING MOCK DATABASE")
        return None

    try:
        initialize_firebase_app()
        db = firestore.client()
    except RuntimeError:
        raise
    except Exception as e:
        error_msg = str(e)
        if "Invalid JWT Signature" in error_msg or "invalid_grant" in error_msg:
            raise RuntimeError(
                "Firestore initialization FAILED - Invalid JWT Signature.\n"
                "The service account key was revoked, is corrupted, or belongs to another project.\n"
                "Generate a new key in Firebase Console > Project Settings > Service Accounts.\n\n"
                f"Original error: {error_msg}"
            )
        raise RuntimeError(
            f"Firestore initialization FAILED. Error: {error_msg}\n"
            f"Please check your Firebase credentials and configuration."
        )

    print("[FIRESTORE] USING REAL FIRESTORE DATABASE")
    print(f"[FIRESTORE] Project: {settings.FIREBASE_PROJECT_ID or 'default'}")
    return db


def get_db() -> firestore.Client:
    """
    Get the initialized Firestore client.

    Raises RuntimeError if Firestore is unavailable.
    """
    if db is None:
        try:
            initialize_firestore()
        except Exception as e:
            raise RuntimeError(
                f"Firestore not initialized and initialization failed: {e}. "
                "Please check your Firebase credentials and configuration."
            )
    if db is None:
        raise RuntimeError("Firestore is disabled (USE_MOCK_DB=true)")
    return db
