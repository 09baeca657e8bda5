"""
trigger.py — The Cloud Build trigger that runs initialization.

The trigger is Pub/Sub-typed only because a trigger needs *some* event
source. It is bound to a topic nobody publishes to and is started
explicitly with run_trigger().
"""

import logging

from google.api_core import exceptions as google_exceptions
from google.cloud.devtools import cloudbuild_v1

logger = logging.getLogger(__name__)

STEP_ID = "initialize"


def _parent(project: str, region: str) -> str:
    return f"projects/{project}/locations/{region}"


def ensure_faux_topic(publisher, project: str, topic: str) -> str:
    """Create the Pub/Sub topic if needed. Returns the full topic path."""
    topic_path = publisher.topic_path(project, topic)
    try:
        publisher.get_topic(request={"topic": topic_path})
        logger.info(f"Topic already exists: {topic_path}")
    except google_exceptions.NotFound:
        publisher.create_topic(request={"name": topic_path})
        logger.info(f"Topic created: {topic_path}")
    return topic_path


def build_definition(image: str, env: dict = None) -> cloudbuild_v1.Build:
    """
    Inline build run by the trigger: one step, the initializer image
    running ``python -m initializer init`` with the forwarded env.
    """
    step = cloudbuild_v1.BuildStep(
        id=STEP_ID,
        name=image,
        entrypoint="python",
        args=["-m", "initializer", "init"],
        env=[f"{k}={v}" for k, v in sorted((env or {}).items())],
    )
    return cloudbuild_v1.Build(
        steps=[step],
        options=cloudbuild_v1.BuildOptions(
            logging=cloudbuild_v1.BuildOptions.LoggingMode.CLOUD_LOGGING_ONLY,
        ),
    )


def find_trigger(client, project: str, region: str, name: str):
    """Return the trigger called ``name``, or None."""
    pager = client.list_build_triggers(request=cloudbuild_v1.ListBuildTriggersRequest(
        project_id=project,
        parent=_parent(project, region),
    ))
    for trigger in pager:
        if trigger.name == name:
            return trigger
    return None


def ensure_trigger(
    client,
    project: str,
    region: str,
    name: str,
    topic_path: str,
    build: cloudbuild_v1.Build,
    service_account: str = None,
):
    """
    Create the trigger unless one with the same name exists.

    Returns:
        (BuildTrigger, bool): the trigger, and whether it was created now.
    """
    existing = find_trigger(client, project, region, name)
    if existing is not None:
        logger.info(f"Trigger already exists: {name} ({existing.id})")
        return existing, False

    trigger = cloudbuild_v1.BuildTrigger(
        name=name,
        description="Initialize the application: setup job, client, cache purge, warm-up",
        pubsub_config=cloudbuild_v1.PubsubConfig(topic=topic_path),
        build=build,
    )
    if service_account:
        trigger.service_account = f"projects/{project}/serviceAccounts/{service_account}"

    created = client.create_build_trigger(request=cloudbuild_v1.CreateBuildTriggerRequest(
        parent=_parent(project, region),
        project_id=project,
        trigger=trigger,
    ))
    logger.info(f"Trigger created: {name} ({created.id})")
    return created, True


def run_trigger(client, project: str, region: str, trigger_id: str,
                wait: bool = False, timeout: float = None):
    """
    Start a build from the trigger.

    With ``wait`` the call blocks until the build ends and returns the
    finished Build; otherwise it returns the build id as soon as the
    build is queued.
    """
    name = f"{_parent(project, region)}/triggers/{trigger_id}"
    logger.info(f"Running trigger: {name}")
    operation = client.run_build_trigger(request=cloudbuild_v1.RunBuildTriggerRequest(
        name=name,
        project_id=project,
        trigger_id=trigger_id,
    ))
    build_id = operation.metadata.build.id
    logger.info(f"Build queued: {build_id}")

    if not wait:
        return build_id

    build = operation.result(timeout=timeout)
    logger.info(f"Build {build.id} finished: {build.status.name}")
    return build
