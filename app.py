#!/usr/bin/env python3
"""AWS CDK entrypoint for provisioning the Trashcal infrastructure.

Reads DOMAIN_NAME and EMAIL (optionally from a local .env file) and declares
the certificate stack in us-east-1 plus the application stack in the CDK CLI
default region, then synthesizes both. A missing variable stops the process
before any stack is declared.
"""
import os
import sys
from typing import Mapping, Optional

import aws_cdk as cdk
from aws_lambda_powertools import Logger
from dotenv import load_dotenv

from common.config import EnvironmentResolver, MissingConfigurationError
from trashcal_app.deployment import build_deployment

logger = Logger(
    service="trashcal-infra",
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    stream=sys.stderr,
)


def main(environ: Optional[Mapping[str, str]] = None) -> cdk.App:
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)

    try:
        config = EnvironmentResolver(environ).resolve_config()
    except MissingConfigurationError as error:
        for name in error.missing:
            logger.error(f"{name} environment variable is not set", extra={"missing": name})
        sys.exit(1)

    app = cdk.App()
    deployment = build_deployment(app, config)
    logger.info(
        "Declared deployment units",
        extra={
            "stacks": [stack.stack_name for stack in deployment.stacks],
            "region": config.region,
        },
    )
    app.synth()
    return app


if __name__ == "__main__":
    main()
