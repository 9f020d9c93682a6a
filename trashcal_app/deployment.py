from typing import Optional

from attrs import define
from aws_cdk import App, Environment, Stack, aws_lambda as _lambda

import common.constants as constants
from certificate.certificate_stack import CertificateStack
from common.config import DeploymentConfig
from trashcal_app.trashcal_app_stack import TrashcalAppStack


@define(slots=True, frozen=True)
class Deployment:
    app_stack: TrashcalAppStack
    certificate_stack: Optional[CertificateStack] = None

    @property
    def stacks(self) -> list[Stack]:
        if self.certificate_stack is None:
            return [self.app_stack]
        return [self.certificate_stack, self.app_stack]


def build_deployment(
    app: App,
    config: DeploymentConfig,
    code: Optional[_lambda.Code] = None,
) -> Deployment:
    """Declare the certificate unit (when needed) and the application unit."""
    env = Environment(account=config.account, region=config.region)

    if config.region == constants.CERTIFICATE_REGION:
        app_stack = TrashcalAppStack(
            app,
            constants.APP_STACK_ID,
            config=config,
            code=code,
            env=env,
        )
        return Deployment(app_stack=app_stack)

    certificate_stack = CertificateStack(
        app,
        constants.CERT_STACK_ID,
        domain_name=config.domain_name,
        env=Environment(account=config.account, region=constants.CERTIFICATE_REGION),
        cross_region_references=True,
    )
    app_stack = TrashcalAppStack(
        app,
        constants.APP_STACK_ID,
        config=config,
        certificate=certificate_stack.export_certificate(),
        code=code,
        env=env,
        cross_region_references=True,
    )
    return Deployment(app_stack=app_stack, certificate_stack=certificate_stack)
