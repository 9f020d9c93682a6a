"""CertificateStack: ACM certificate for the CloudFront distribution.

CloudFront only accepts certificates from us-east-1, so when the rest of the
service lives in another region the certificate gets its own stack there and
is exported across the region boundary.
"""

from aws_cdk import CfnOutput
from aws_cdk import aws_certificatemanager as acm
from constructs import Construct

from common.deployment_unit import DeploymentUnit
from common.references import ExportedReference


def build_certificate(
    scope: Construct, construct_id: str, domain_name: str
) -> acm.Certificate:
    # DNS is hosted outside Route 53: the validation CNAME shown in the ACM
    # console has to be created by hand before the stack finishes deploying.
    return acm.Certificate(
        scope,
        construct_id,
        domain_name=domain_name,
        validation=acm.CertificateValidation.from_dns(),
    )


class CertificateStack(DeploymentUnit):
    """Region-pinned unit that owns the distribution certificate."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        domain_name: str,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.certificate = build_certificate(
            self, self.context.build_resource_id("Certificate"), domain_name
        )

        CfnOutput(
            self,
            "CertificateArn",
            value=self.certificate.certificate_arn,
            description="ACM certificate ARN (pending until the DNS validation record exists)",
        )

    def export_certificate(self) -> ExportedReference[acm.Certificate]:
        return self.export(self.certificate)
