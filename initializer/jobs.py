"""
jobs.py — Cloud Run Job helpers.

Covers the two job-shaped steps of initialization:

  * idempotent creation of a named job (describe, create only if absent)
  * synchronous execution of that job, blocking until the execution ends

Both the server setup job and the client setup job go through here.
"""

import logging

from google.api_core import exceptions as google_exceptions
from google.cloud import run_v2

logger = logging.getLogger(__name__)

CLOUDSQL_VOLUME     = "cloudsql"
CLOUDSQL_MOUNT_PATH = "/cloudsql"


class JobExecutionError(RuntimeError):
    """Raised when a job execution finishes with failed tasks."""

    def __init__(self, execution_name: str, failed: int, succeeded: int):
        self.execution_name = execution_name
        self.failed         = failed
        self.succeeded      = succeeded
        super().__init__(
            f"Execution {execution_name} failed: "
            f"{failed} failed task(s), {succeeded} succeeded"
        )


def job_path(project: str, region: str, name: str) -> str:
    return f"projects/{project}/locations/{region}/jobs/{name}"


def parse_secret_refs(text: str) -> dict:
    """
    Parse secret env references in the ``--set-secrets`` format.

    ``"DJANGO_ENV=django_settings:latest,PASSWORD=admin_password"`` becomes
    ``{"DJANGO_ENV": ("django_settings", "latest"),
       "PASSWORD": ("admin_password", "latest")}``.
    """
    refs = {}
    for entry in (text or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        env_name, sep, secret = entry.partition("=")
        env_name, secret = env_name.strip(), secret.strip()
        if not sep or not env_name or not secret:
            raise ValueError(f"Malformed secret reference: {entry!r}")
        secret_name, _, version = secret.partition(":")
        if not secret_name:
            raise ValueError(f"Malformed secret reference: {entry!r}")
        refs[env_name] = (secret_name, version or "latest")
    return refs


def _env_vars(env: dict = None, secrets: dict = None) -> list:
    env_vars = [run_v2.EnvVar(name=str(k), value=str(v)) for k, v in (env or {}).items()]
    for name, (secret, version) in (secrets or {}).items():
        env_vars.append(run_v2.EnvVar(
            name=name,
            value_source=run_v2.EnvVarSource(
                secret_key_ref=run_v2.SecretKeySelector(secret=secret, version=version)
            ),
        ))
    return env_vars


def build_job(
    image: str,
    args: list = None,
    command: list = None,
    env: dict = None,
    secrets: dict = None,
    service_account: str = None,
    cloudsql_instance: str = None,
) -> run_v2.Job:
    """
    Describe a single-container, single-task job.

    Tasks are never retried. A Cloud SQL instance, when given, is mounted
    at /cloudsql.
    """
    container = run_v2.Container(
        image=image,
        command=list(command or []),
        args=list(args or []),
        env=_env_vars(env, secrets),
    )
    task = run_v2.TaskTemplate(max_retries=0)

    if cloudsql_instance:
        container.volume_mounts = [
            run_v2.VolumeMount(name=CLOUDSQL_VOLUME, mount_path=CLOUDSQL_MOUNT_PATH)
        ]
        task.volumes = [run_v2.Volume(
            name=CLOUDSQL_VOLUME,
            cloud_sql_instance=run_v2.CloudSqlInstance(instances=[cloudsql_instance]),
        )]

    task.containers = [container]
    if service_account:
        task.service_account = service_account

    return run_v2.Job(template=run_v2.ExecutionTemplate(task_count=1, template=task))


def job_exists(client, name: str) -> bool:
    """Return True if the job ``name`` (fully qualified) exists."""
    try:
        client.get_job(name=name)
    except google_exceptions.NotFound:
        return False
    return True


def ensure_job(client, project: str, region: str, name: str, job: run_v2.Job) -> bool:
    """
    Create the job if it does not exist yet.

    An existing job is left exactly as it is. Returns True when the job
    was created by this call.
    """
    path = job_path(project, region, name)
    if job_exists(client, path):
        logger.info(f"Job already exists: {path}")
        return False

    logger.info(f"Creating job: {path} (image: {job.template.template.containers[0].image})")
    operation = client.create_job(request=run_v2.CreateJobRequest(
        parent=f"projects/{project}/locations/{region}",
        job=job,
        job_id=name,
    ))
    operation.result()
    logger.info(f"Job created: {path}")
    return True


def execute_job(client, name: str, env: dict = None, timeout: float = None):
    """
    Run the job ``name`` and wait for the execution to finish.

    Args:
        client  : run_v2.JobsClient (or compatible).
        name    : Fully-qualified job name.
        env     : Optional env overrides for this execution only.
        timeout : Seconds to wait for the execution.

    Returns:
        The finished run_v2.Execution.

    Raises:
        JobExecutionError: The execution completed with failed tasks.
    """
    request = run_v2.RunJobRequest(name=name)
    if env:
        request.overrides = run_v2.RunJobRequest.Overrides(
            container_overrides=[
                run_v2.RunJobRequest.Overrides.ContainerOverride(env=_env_vars(env))
            ]
        )

    logger.info(f"Executing job: {name}")
    operation = client.run_job(request=request)
    logger.info(f"Execution started. Operation: {operation.operation.name}")

    execution = operation.result(timeout=timeout)
    if execution.failed_count:
        raise JobExecutionError(execution.name, execution.failed_count, execution.succeeded_count)

    logger.info(f"Execution finished: {execution.name} "
                f"({execution.succeeded_count} task(s) succeeded)")
    return execution
