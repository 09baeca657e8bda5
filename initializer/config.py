"""
config.py — Central configuration for the application initializer.

All values here serve as defaults and can be overridden via environment
variables, either in the Cloud Build step env or at the command line.
"""

import os

# ==========================================
# Project Configuration
# ==========================================
PROJECT_ID = os.getenv("PROJECT_ID", "your-gcp-project-id")
REGION     = os.getenv("REGION",     "us-central1")

# ==========================================
# Setup Job (server side)
# ==========================================
# Cloud Run Job that runs the server's one-off setup (migrations, fixtures,
# superuser). Created on first run, reused afterwards.
SETUP_JOB_NAME        = os.getenv("SETUP_JOB_NAME", "setup")
SERVER_IMAGE          = os.getenv("SERVER_IMAGE", "gcr.io/your-gcp-project-id/server")
SETUP_COMMAND         = os.getenv("SETUP_COMMAND", "setup")
SETUP_SERVICE_ACCOUNT = os.getenv("SETUP_SERVICE_ACCOUNT", "")

# Cloud SQL connection name, "project:region:instance". Empty disables the mount.
CLOUDSQL_INSTANCE = os.getenv("CLOUDSQL_INSTANCE", "")

# Secret env vars in the --set-secrets format: ENV=secret[:version],...
SETUP_SECRETS = os.getenv("SETUP_SECRETS", "")

# ==========================================
# Client Job (front end)
# ==========================================
CLIENT_JOB_NAME        = os.getenv("CLIENT_JOB_NAME", "client")
CLIENT_IMAGE           = os.getenv("CLIENT_IMAGE", "gcr.io/your-gcp-project-id/client")
CLIENT_SERVICE_ACCOUNT = os.getenv("CLIENT_SERVICE_ACCOUNT", "")

# ==========================================
# HTTP endpoints
# ==========================================
SERVER_URL   = os.getenv("SERVER_URL", "")
SITE_URL     = os.getenv("SITE_URL",   "")
PURGE_URL    = os.getenv("PURGE_URL",  SITE_URL)
PURGE_METHOD = os.getenv("PURGE_METHOD", "PURGE")
WARMUP_PATH  = os.getenv("WARMUP_PATH",  "/api/products/")

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "30"))
# Upper bound for a single job execution (seconds).
JOB_TIMEOUT  = float(os.getenv("JOB_TIMEOUT", "1800"))

# ==========================================
# Cloud Build trigger
# ==========================================
# Pub/Sub topic the trigger is bound to. Nothing publishes to it; it only
# satisfies the trigger type.
FAUX_TOPIC_NAME       = os.getenv("FAUX_TOPIC_NAME", "faux-topic")
TRIGGER_NAME          = os.getenv("TRIGGER_NAME",    "init-application")
INITIALIZER_IMAGE     = os.getenv("INITIALIZER_IMAGE", "gcr.io/your-gcp-project-id/initializer")
BUILD_SERVICE_ACCOUNT = os.getenv("BUILD_SERVICE_ACCOUNT", "")

# ==========================================
# Run records
# ==========================================
# GCS bucket for initialization records. Empty disables recording.
RECORD_BUCKET = os.getenv("RECORD_BUCKET", "")
RECORD_FOLDER = os.getenv("RECORD_FOLDER", "initialization")

# Variables forwarded from the trigger into the build step environment.
FORWARDED_ENV = [
    "PROJECT_ID", "REGION",
    "SETUP_JOB_NAME", "SERVER_IMAGE", "SETUP_COMMAND", "SETUP_SERVICE_ACCOUNT",
    "CLOUDSQL_INSTANCE", "SETUP_SECRETS",
    "CLIENT_JOB_NAME", "CLIENT_IMAGE", "CLIENT_SERVICE_ACCOUNT",
    "SERVER_URL", "SITE_URL", "PURGE_URL", "PURGE_METHOD", "WARMUP_PATH",
    "HTTP_TIMEOUT", "JOB_TIMEOUT",
    "RECORD_BUCKET", "RECORD_FOLDER",
]
