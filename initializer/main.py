"""
main.py — Initialization orchestrator.

This is the entrypoint of the Cloud Build step. It runs five steps, in
order, once per deployment:

  Step 1 → ensure the server setup job exists (create only if absent)
  Step 2 → execute the setup job and wait for it
  Step 3 → run the client setup container and wait for it
  Step 4 → purge the CDN cache of the placeholder site
  Step 5 → warm up the API

The first failing step stops the run; nothing is retried.

Usage:
  python -m initializer init         # run the five steps
  python -m initializer provision    # create faux topic + Cloud Build trigger
  python -m initializer trigger      # start a build from the trigger
"""

import argparse
import json
import logging
import os
import shlex
from datetime import datetime, timezone

from google.cloud import pubsub_v1, run_v2, storage
from google.cloud.devtools import cloudbuild_v1

from initializer import cache, config, jobs, records, trigger

# ──────────────────────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────────────────────
logger = logging.getLogger(__name__)

TOTAL_STEPS = 5


def _step(n: int, title: str) -> None:
    logger.info(f"Step {n}/{TOTAL_STEPS} — {title}")


def _record(bucket, data: dict, folder: str):
    if bucket is None:
        return None
    return records.upload_init_metadata(bucket, data, folder)


# ──────────────────────────────────────────────────────────────────────────────
# Main orchestrator
# ──────────────────────────────────────────────────────────────────────────────

def run_initialization(
    jobs_client=None,
    bucket=None,
    http_session=None,
    project_id: str = None,
    region: str = None,
) -> dict:
    """
    Full initialization entry point.

    Args:
        jobs_client  : run_v2.JobsClient; created when omitted.
        bucket       : GCS bucket for run records; resolved from
                       RECORD_BUCKET when omitted (None disables records).
        http_session : Optional requests.Session for steps 4 and 5.
        project_id   : Overrides config.PROJECT_ID.
        region       : Overrides config.REGION.

    Returns:
        dict with status "success" and per-step details.

    Raises:
        Exception: Re-raised after logging and saving failure metadata.
    """
    PROJECT_ID = project_id or config.PROJECT_ID
    REGION     = region     or config.REGION

    logger.info("=" * 60)
    logger.info("Application Initialization — Start")
    logger.info("=" * 60)
    logger.info(f"Project: {PROJECT_ID}, region: {REGION}")

    # Steps 4 and 5 need absolute URLs; check before any job is touched.
    missing = [name for name in ("SERVER_URL", "PURGE_URL") if not getattr(config, name)]
    if missing:
        raise ValueError(f"Missing required setting(s): {', '.join(missing)}")

    client = jobs_client or run_v2.JobsClient()
    if bucket is None and config.RECORD_BUCKET:
        bucket = storage.Client(project=PROJECT_ID).bucket(config.RECORD_BUCKET)

    if bucket is not None:
        try:
            previous = records.latest_init_metadata(bucket, config.RECORD_FOLDER)
            if previous:
                logger.info(f"Previous initialization: {previous.get('status')} "
                            f"(started {previous.get('start_time')})")
        except Exception as e:
            logger.warning(f"Could not read previous record ({e}). Treating as first run.")

    setup_path  = jobs.job_path(PROJECT_ID, REGION, config.SETUP_JOB_NAME)
    client_path = jobs.job_path(PROJECT_ID, REGION, config.CLIENT_JOB_NAME)

    started   = datetime.now(timezone.utc)
    completed = []
    current   = None
    result    = {"project_id": PROJECT_ID, "region": REGION}

    try:
        current = "ensure_setup_job"
        _step(1, "setup job")
        setup_job = jobs.build_job(
            image=config.SERVER_IMAGE,
            args=shlex.split(config.SETUP_COMMAND),
            secrets=jobs.parse_secret_refs(config.SETUP_SECRETS),
            service_account=config.SETUP_SERVICE_ACCOUNT,
            cloudsql_instance=config.CLOUDSQL_INSTANCE,
        )
        result["setup_job_created"] = jobs.ensure_job(
            client, PROJECT_ID, REGION, config.SETUP_JOB_NAME, setup_job)
        completed.append(current)

        current = "execute_setup_job"
        _step(2, "execute setup job")
        execution = jobs.execute_job(client, setup_path, timeout=config.JOB_TIMEOUT)
        result["setup_execution"] = execution.name
        completed.append(current)

        current = "client_setup"
        _step(3, "client setup")
        client_job = jobs.build_job(
            image=config.CLIENT_IMAGE,
            service_account=config.CLIENT_SERVICE_ACCOUNT,
        )
        result["client_job_created"] = jobs.ensure_job(
            client, PROJECT_ID, REGION, config.CLIENT_JOB_NAME, client_job)
        execution = jobs.execute_job(
            client, client_path,
            env={
                "PROJECT_ID": PROJECT_ID,
                "REGION":     REGION,
                "SERVER_URL": config.SERVER_URL,
                "SITE_URL":   config.SITE_URL,
            },
            timeout=config.JOB_TIMEOUT,
        )
        result["client_execution"] = execution.name
        completed.append(current)

        current = "purge_cache"
        _step(4, "purge cache")
        result["purge_status"] = cache.purge_cache(
            config.PURGE_URL, method=config.PURGE_METHOD,
            timeout=config.HTTP_TIMEOUT, session=http_session)
        completed.append(current)

        current = "warm_up"
        _step(5, "warm up")
        result["warmup_status"] = cache.warm_up(
            config.SERVER_URL, config.WARMUP_PATH,
            timeout=config.HTTP_TIMEOUT, session=http_session)
        completed.append(current)

    except Exception as e:
        logger.error(f"Initialization failed at {current}: {e}", exc_info=True)

        try:
            _record(bucket, {
                "status":          "failed",
                "failed_step":     current,
                "completed_steps": completed,
                "start_time":      started.isoformat(),
                "failure_time":    datetime.now(timezone.utc).isoformat(),
                "error":           str(e),
                "error_type":      type(e).__name__,
                **result,
            }, config.RECORD_FOLDER)
        except Exception as record_err:
            logger.error(f"Also failed to save failure record: {record_err}")

        raise

    finished = datetime.now(timezone.utc)
    duration_s = (finished - started).total_seconds()
    result.update({
        "status":           "success",
        "completed_steps":  completed,
        "duration_seconds": duration_s,
    })

    # A lost success record leaves the run successful.
    try:
        result["record_file"] = _record(bucket, {
            **result,
            "start_time": started.isoformat(),
            "end_time":   finished.isoformat(),
        }, config.RECORD_FOLDER)
    except Exception as record_err:
        logger.error(f"Failed to save success record: {record_err}", exc_info=True)
        result["record_file"] = None

    logger.info(f"Initialization complete in {duration_s:.0f}s.")
    logger.info("=" * 60)
    return result


# ──────────────────────────────────────────────────────────────────────────────
# Trigger provisioning
# ──────────────────────────────────────────────────────────────────────────────

def forwarded_env() -> dict:
    """Env vars from FORWARDED_ENV that are set, as passed into the build step."""
    return {name: os.environ[name] for name in config.FORWARDED_ENV if os.environ.get(name)}


def provision(build_client=None, publisher=None, project_id: str = None,
              region: str = None) -> dict:
    """Ensure the faux topic and the initialization trigger exist."""
    PROJECT_ID = project_id or config.PROJECT_ID
    REGION     = region     or config.REGION

    publisher    = publisher    or pubsub_v1.PublisherClient()
    build_client = build_client or cloudbuild_v1.CloudBuildClient()

    topic_path = trigger.ensure_faux_topic(publisher, PROJECT_ID, config.FAUX_TOPIC_NAME)
    build = trigger.build_definition(config.INITIALIZER_IMAGE, env=forwarded_env())
    build_trigger, created = trigger.ensure_trigger(
        build_client, PROJECT_ID, REGION, config.TRIGGER_NAME, topic_path, build,
        service_account=config.BUILD_SERVICE_ACCOUNT,
    )
    return {
        "topic":           topic_path,
        "trigger_name":    build_trigger.name,
        "trigger_id":      build_trigger.id,
        "trigger_created": created,
    }


def run_trigger(build_client=None, wait: bool = False, project_id: str = None,
                region: str = None) -> dict:
    """Start the initialization trigger by name."""
    PROJECT_ID = project_id or config.PROJECT_ID
    REGION     = region     or config.REGION

    build_client  = build_client or cloudbuild_v1.CloudBuildClient()
    build_trigger = trigger.find_trigger(build_client, PROJECT_ID, REGION, config.TRIGGER_NAME)
    if build_trigger is None:
        raise LookupError(f"Trigger not found: {config.TRIGGER_NAME} "
                          f"(run 'provision' first)")

    outcome = trigger.run_trigger(build_client, PROJECT_ID, REGION, build_trigger.id,
                                  wait=wait, timeout=config.JOB_TIMEOUT)
    if not wait:
        return {"trigger_id": build_trigger.id, "build_id": outcome}

    if outcome.status != cloudbuild_v1.Build.Status.SUCCESS:
        raise RuntimeError(f"Build {outcome.id} ended with status {outcome.status.name}")
    return {"trigger_id": build_trigger.id, "build_id": outcome.id,
            "status": outcome.status.name}


# ──────────────────────────────────────────────────────────────────────────────
# CLI entry point
# ──────────────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="initializer",
        description="Initialize a deployed web application on Google Cloud.",
    )
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("init", help="Run setup job, client setup, cache purge and warm-up")
    sub.add_parser("provision", help="Create the faux topic and the Cloud Build trigger")
    run = sub.add_parser("trigger", help="Start a build from the Cloud Build trigger")
    run.add_argument("--wait", action="store_true", help="Block until the build finishes")
    return parser


def main(argv=None) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    )
    args = build_parser().parse_args(argv)
    command = args.command or "init"

    print("=" * 60)
    print(f"Application Initializer — {command}")
    print("=" * 60)
    print(f"  Project : {config.PROJECT_ID}")
    print(f"  Region  : {config.REGION}")
    print("=" * 60)

    try:
        if command == "provision":
            result = provision()
        elif command == "trigger":
            result = run_trigger(wait=args.wait)
        else:
            result = run_initialization()
        print("\nResult:")
        print(json.dumps(result, indent=2, default=str))
    except Exception as e:
        print(f"\n{command} error: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
