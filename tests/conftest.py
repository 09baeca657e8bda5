"""
Shared fakes for the Google Cloud clients.

Nothing here talks to the network; every client is a MagicMock shaped
like the real one where the code under test looks.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as google_exceptions

from initializer import config


def make_execution(name="projects/p/locations/r/jobs/j/executions/j-1", failed=0, succeeded=1):
    return SimpleNamespace(name=name, failed_count=failed, succeeded_count=succeeded)


def make_operation(result=None, name="operations/op-1"):
    operation = MagicMock()
    operation.operation.name = name
    operation.result.return_value = result
    return operation


@pytest.fixture
def jobs_client():
    """JobsClient where no job exists yet and every execution succeeds."""
    client = MagicMock()
    client.get_job.side_effect = google_exceptions.NotFound("job not found")
    client.create_job.return_value = make_operation()
    client.run_job.side_effect = lambda request: make_operation(
        make_execution(name=f"{request.name}/executions/exec-1")
    )
    return client


@pytest.fixture
def http_session():
    session = MagicMock()
    session.request.return_value = MagicMock(status_code=200)
    session.get.return_value = MagicMock(status_code=200)
    return session


@pytest.fixture
def fake_bucket():
    bucket = MagicMock()
    bucket.name = "init-records"
    return bucket


@pytest.fixture
def init_config(monkeypatch):
    """Pin the config values the orchestrator reads."""
    values = {
        "PROJECT_ID":             "demo-project",
        "REGION":                 "europe-west1",
        "SETUP_JOB_NAME":         "setup",
        "SERVER_IMAGE":           "gcr.io/demo-project/server:latest",
        "SETUP_COMMAND":          "setup",
        "SETUP_SERVICE_ACCOUNT":  "server@demo-project.iam.gserviceaccount.com",
        "CLOUDSQL_INSTANCE":      "demo-project:europe-west1:psql",
        "SETUP_SECRETS":          "DJANGO_ENV=django_settings,SUPERUSER_PASSWORD=superuser_password:2",
        "CLIENT_JOB_NAME":        "client",
        "CLIENT_IMAGE":           "gcr.io/demo-project/client:latest",
        "CLIENT_SERVICE_ACCOUNT": "client@demo-project.iam.gserviceaccount.com",
        "SERVER_URL":             "https://server-abc.a.run.app",
        "SITE_URL":               "https://demo-project.web.app",
        "PURGE_URL":              "https://demo-project.web.app",
        "PURGE_METHOD":           "PURGE",
        "WARMUP_PATH":            "/api/products/",
        "HTTP_TIMEOUT":           5.0,
        "JOB_TIMEOUT":            600.0,
        "RECORD_BUCKET":          "",
        "RECORD_FOLDER":          "initialization",
        "FAUX_TOPIC_NAME":        "faux-topic",
        "TRIGGER_NAME":           "init-application",
        "INITIALIZER_IMAGE":      "gcr.io/demo-project/initializer:latest",
        "BUILD_SERVICE_ACCOUNT":  "builder@demo-project.iam.gserviceaccount.com",
    }
    for key, value in values.items():
        monkeypatch.setattr(config, key, value)
    return values
