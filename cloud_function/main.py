"""
cloud_function/main.py — HTTP endpoint that starts application initialization.

Deployed as a Google Cloud Function (gen2). A call to it runs the Cloud
Build trigger that executes the initializer; the function returns as
soon as the build is queued.

The function is deliberately thin — the five initialization steps live
inside the build. This function's only responsibility is to run the
trigger.

Deployment command:
  gcloud functions deploy run-initialization \\
    --gen2 \\
    --runtime=python311 \\
    --region=us-central1 \\
    --source=./cloud_function \\
    --entry-point=run_initialization_trigger \\
    --trigger-http \\
    --set-env-vars GCP_PROJECT=YOUR_PROJECT_ID,REGION=us-central1,TRIGGER_NAME=init-application \\
    --service-account=YOUR_SA@YOUR_PROJECT.iam.gserviceaccount.com
"""

import os
import json
import logging

import functions_framework
from google.cloud.devtools import cloudbuild_v1

logger = logging.getLogger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────────
PROJECT_ID   = os.environ.get("GCP_PROJECT",  "your-gcp-project-id")
REGION       = os.environ.get("REGION",       "us-central1")
TRIGGER_NAME = os.environ.get("TRIGGER_NAME", "init-application")


def _find_trigger_id(client, parent: str):
    pager = client.list_build_triggers(request=cloudbuild_v1.ListBuildTriggersRequest(
        project_id=PROJECT_ID,
        parent=parent,
    ))
    for trigger in pager:
        if trigger.name == TRIGGER_NAME:
            return trigger.id
    return None


@functions_framework.http
def run_initialization_trigger(request):
    """
    HTTP handler that runs the initialization trigger.

    An optional JSON body ``{"trigger_id": "..."}`` skips the lookup by
    name.

    Args:
        request: Flask Request object.

    Returns:
        (str, int): HTTP response body and status code.
    """
    payload    = request.get_json(silent=True) or {}
    trigger_id = payload.get("trigger_id")
    parent     = f"projects/{PROJECT_ID}/locations/{REGION}"

    try:
        client = cloudbuild_v1.CloudBuildClient()

        if not trigger_id:
            trigger_id = _find_trigger_id(client, parent)
        if not trigger_id:
            logger.error(f"Trigger not found: {TRIGGER_NAME} in {parent}")
            return json.dumps({
                "status":  "error",
                "message": f"Trigger not found: {TRIGGER_NAME}",
            }), 404

        logger.info(f"Running Cloud Build trigger: {parent}/triggers/{trigger_id}")
        operation = client.run_build_trigger(request=cloudbuild_v1.RunBuildTriggerRequest(
            name=f"{parent}/triggers/{trigger_id}",
            project_id=PROJECT_ID,
            trigger_id=trigger_id,
        ))
        build_id = operation.metadata.build.id
        logger.info(f"Build queued: {build_id}")

    except Exception as e:
        logger.error(f"Failed to run Cloud Build trigger: {e}", exc_info=True)
        return json.dumps({"status": "error", "message": str(e)}), 500

    return json.dumps({
        "status":     "triggered",
        "trigger":    TRIGGER_NAME,
        "trigger_id": trigger_id,
        "build_id":   build_id,
        "project":    PROJECT_ID,
        "region":     REGION,
    }), 200
