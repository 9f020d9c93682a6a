from aws_cdk.assertions import Template
from stack_test_helpers import (
    TEST_DOMAIN_NAME,
    cert_template,
    deployment,
)
from trashcal_app.deployment import Deployment


def test_certificate_stack_is_pinned_to_us_east_1(deployment: Deployment):
    assert deployment.certificate_stack.region == "us-east-1"


def test_certificate_uses_dns_validation(cert_template: Template):
    cert_template.resource_count_is("AWS::CertificateManager::Certificate", 1)
    cert_template.has_resource_properties(
        "AWS::CertificateManager::Certificate",
        {
            "DomainName": TEST_DOMAIN_NAME,
            "ValidationMethod": "DNS",
        },
    )


def test_certificate_validation_is_left_to_the_operator(cert_template: Template):
    # No hosted zone: the DNS challenge is answered at the registrar by hand
    cert_template.resource_count_is("AWS::Route53::HostedZone", 0)
    cert_template.resource_count_is("AWS::Route53::RecordSet", 0)
    certificates = cert_template.find_resources("AWS::CertificateManager::Certificate")
    (certificate,) = certificates.values()
    assert "DomainValidationOptions" not in certificate["Properties"]


def test_certificate_is_exported_across_regions(cert_template: Template):
    cert_template.resource_count_is("Custom::CrossRegionExportWriter", 1)


def test_certificate_arn_output(cert_template: Template):
    cert_template.has_output("CertificateArn", {})
