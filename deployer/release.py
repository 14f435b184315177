"""Deploy the backend to Elastic Beanstalk and the frontend build to S3."""

import mimetypes
import os
import shutil
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from deployer import console, processes
from deployer.config import Settings
from deployer.env_file import BUCKET_NAME_KEY, TOPIC_ARN_KEY, read_env_file
from deployer.errors import CommandFailedError, DeployError, MissingCredentialsError
from deployer.provision import client_config


CREDENTIAL_VARIABLES = ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY")

# S3 DeleteObjects accepts at most this many keys per request
DELETE_BATCH_SIZE = 1000


class Releaser:
    """Pushes built artifacts to AWS hosting."""

    def __init__(
        self,
        settings: Settings,
        environ: Optional[Mapping[str, str]] = None,
        runner: ModuleType = processes,
        session: Optional[Any] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.settings = settings
        self.environ = os.environ if environ is None else environ
        self.runner = runner
        self._session = session
        self.which = which

    def _s3_client(self):
        session = self._session or boto3.Session(region_name=self.settings.region)
        return session.client("s3", config=client_config(self.settings.region))

    def require_credentials(self) -> None:
        """Fail fast unless both credential variables are non-empty.

        Raises:
            MissingCredentialsError: Naming every unset variable.
        """
        missing = [name for name in CREDENTIAL_VARIABLES if not self.environ.get(name)]
        if missing:
            raise MissingCredentialsError(missing)

    def ensure_eb_cli(self) -> None:
        if self.which("eb"):
            return
        console.info("Installing EB CLI...")
        self.runner.run([sys.executable, "-m", "pip", "install", "awsebcli"])

    def _backend_envvars(self, bucket_name: str, topic_arn: str) -> str:
        envvars: Dict[str, str] = {
            "AWS_ACCESS_KEY_ID": self.environ.get("AWS_ACCESS_KEY_ID", ""),
            "AWS_SECRET_ACCESS_KEY": self.environ.get("AWS_SECRET_ACCESS_KEY", ""),
            "AWS_REGION": self.settings.region,
            "DYNAMODB_TABLE_NAME": self.settings.table_name,
            "S3_BUCKET_NAME": bucket_name,
            "SNS_TOPIC_ARN": topic_arn,
        }
        return ",".join(f"{key}={value}" for key, value in envvars.items())

    def deploy_backend(self, bucket_name: str, topic_arn: str) -> None:
        """Initialise the EB application and create the backend environment.

        Both steps tolerate failure, since either may already have been done
        by an earlier deploy.
        """
        cwd = self.settings.backend_dir
        init_command = [
            "eb",
            "init",
            self.settings.project_name,
            "--platform",
            "java",
            "--region",
            self.settings.region,
            "--non-interactive",
        ]
        create_command = [
            "eb",
            "create",
            self.settings.environment_name,
            "--instance-type",
            self.settings.instance_type,
            "--single-instance",
            "--envvars",
            self._backend_envvars(bucket_name, topic_arn),
        ]

        for command in (init_command, create_command):
            try:
                self.runner.run(command, cwd=cwd)
            except CommandFailedError as e:
                detail = e.reason or f"exit {e.returncode}"
                step = " ".join(command[:2])
                console.warning(f"{step} failed ({detail}), continuing")

    def sync_frontend(self, bucket_name: str) -> Tuple[int, int]:
        """Mirror the frontend build directory into the bucket.

        Uploads every local file and deletes bucket keys with no local
        counterpart.

        Returns:
            (uploaded, deleted) object counts.
        """
        build_dir: Path = self.settings.frontend_build_dir
        if not build_dir.is_dir():
            raise DeployError(
                f"Frontend build not found at {build_dir}. Run the build command first."
            )

        local_files = {
            path.relative_to(build_dir).as_posix(): path
            for path in sorted(build_dir.rglob("*"))
            if path.is_file()
        }

        try:
            s3 = self._s3_client()
            self._upload(s3, bucket_name, local_files)
            stale = self._stale_keys(s3, bucket_name, local_files)
            self._delete(s3, bucket_name, stale)
        except (BotoCoreError, ClientError, S3UploadFailedError) as e:
            raise DeployError(
                f"Could not sync frontend to s3://{bucket_name}: {e}"
            ) from e

        return len(local_files), len(stale)

    def _upload(self, s3, bucket_name: str, local_files: Dict[str, Path]) -> None:
        for key, path in local_files.items():
            extra_args = {}
            content_type, _ = mimetypes.guess_type(path.name)
            if content_type:
                extra_args["ContentType"] = content_type
            s3.upload_file(str(path), bucket_name, key, ExtraArgs=extra_args or None)

    def _stale_keys(
        self, s3, bucket_name: str, local_files: Dict[str, Path]
    ) -> List[str]:
        stale = []
        paginator = s3.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket_name):
            for obj in page.get("Contents", []):
                if obj["Key"] not in local_files:
                    stale.append(obj["Key"])
        return stale

    def _delete(self, s3, bucket_name: str, keys: List[str]) -> None:
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start : start + DELETE_BATCH_SIZE]
            s3.delete_objects(
                Bucket=bucket_name,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
            )

    def deploy(self) -> None:
        """Deploy backend and frontend using identifiers recorded by setup."""
        self.require_credentials()

        console.info("Deploying to AWS...")

        recorded = read_env_file(self.settings.env_file)
        bucket_name = recorded.get(BUCKET_NAME_KEY)
        if not bucket_name:
            raise DeployError(
                f"No bucket recorded in {self.settings.env_file}. "
                "Run the setup command first."
            )
        topic_arn = recorded.get(TOPIC_ARN_KEY, "")

        self.ensure_eb_cli()
        self.deploy_backend(bucket_name, topic_arn)

        uploaded, deleted = self.sync_frontend(bucket_name)
        console.info(f"Uploaded {uploaded} files, removed {deleted} stale objects")

        region = self.settings.region
        console.success("Deployment completed")
        backend_host = f"{self.settings.environment_name}.{region}.elasticbeanstalk.com"
        console.info(f"Backend: https://{backend_host}")
        frontend_host = f"{bucket_name}.s3-website-{region}.amazonaws.com"
        console.info(f"Frontend: https://{frontend_host}")
