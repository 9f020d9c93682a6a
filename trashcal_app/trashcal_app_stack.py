from typing import Optional, Sequence, cast

from aws_cdk import (
    CfnOutput,
    Duration,
    aws_apigatewayv2 as apigwv2,
    aws_apigatewayv2_integrations as apigwv2_integrations,
    aws_certificatemanager as acm,
    aws_cloudfront as cloudfront,
    aws_cloudfront_origins as origins,
    aws_iam as iam,
    aws_lambda as _lambda,
    aws_logs as logs,
)
from constructs import Construct

import common.constants as constants
from certificate.certificate_stack import build_certificate
from common.config import DeploymentConfig
from common.deployment_unit import DeploymentUnit
from common.references import ExportedReference
from trashcal_app.observability import ObservabilityPipeline


def validate_cache_key_headers(
    cache_key_headers: Sequence[str],
    representation_headers: Sequence[str] = constants.REPRESENTATION_HEADERS,
) -> None:
    """Every header that changes the body for the same path has to be part of the cache key."""
    keyed = {header.lower() for header in cache_key_headers}
    missing = [header for header in representation_headers if header.lower() not in keyed]
    if missing:
        raise ValueError(
            f"Cache key is missing representation header(s) {', '.join(missing)}: "
            "responses for the same path would collide"
        )


class TrashcalAppStack(DeploymentUnit):

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        config: DeploymentConfig,
        certificate: Optional[ExportedReference[acm.Certificate]] = None,
        code: Optional[_lambda.Code] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.config = config

        # Certificate comes from the us-east-1 unit unless this unit already lives there
        if certificate is not None:
            self.certificate = self.import_reference(certificate)
        else:
            self.certificate = build_certificate(
                self, self.context.build_resource_id("Certificate"), config.domain_name
            )

        # The calendar function is built elsewhere; only its artifact is deployed here
        self.code = code or _lambda.Code.from_asset(constants.COMPUTE_ARTIFACT_DIR)
        self.function_name = self.context.build_resource_name("function")
        self.log_group = self.context.build_log_group(self.function_name)
        self.function = self._build_calendar_lambda(self.log_group)

        # API Gateway
        self.http_api = self._build_api_gateway_http_api(self.function)

        # CloudFront
        self.cache_policy = self._build_cache_policy()
        self.distribution = self._build_distribution(
            self.http_api, self.cache_policy, self.certificate
        )

        # Log metrics, alarm and e-mail notification
        self.observability = ObservabilityPipeline(
            self,
            self.context.build_resource_id("Observability"),
            context=self.context,
            log_group=self.log_group,
            email=config.email,
        )

        # GitHub Actions deploy role
        self.oidc_provider = self._build_github_oidc_provider()
        self.deploy_role = self._build_github_deploy_role(self.oidc_provider)

        CfnOutput(
            self,
            "DistributionDomainName",
            value=self.distribution.distribution_domain_name,
            description=f"CNAME target for {config.domain_name}",
        )
        CfnOutput(self, "ApiEndpoint", value=self.http_api.api_endpoint)
        CfnOutput(self, "DeployRoleArn", value=self.deploy_role.role_arn)

    # Resource creation

    def _build_calendar_lambda(self, log_group: logs.ILogGroup) -> _lambda.Function:
        return _lambda.Function(
            self,
            self.context.build_resource_id("Function"),
            function_name=self.function_name,
            runtime=constants.COMPUTE_RUNTIME,
            handler=constants.COMPUTE_HANDLER,
            code=self.code,
            architecture=constants.DEFAULT_ARCHITECTURE,
            description="Returns a pickup calendar as iCal or JSON depending on Accept",
            logging_format=_lambda.LoggingFormat.JSON,
            log_group=log_group,
            environment={
                "AWS_LAMBDA_LOG_FORMAT": "json",
            },
            timeout=Duration.seconds(30),
            memory_size=128,
        )

    def _build_api_gateway_http_api(self, calendar_lambda: _lambda.Function) -> apigwv2.HttpApi:
        """Create HTTP API with its only route bound to the calendar Lambda."""
        http_api = apigwv2.HttpApi(
            self,
            self.context.build_resource_id("API"),
            api_name=self.context.build_resource_name("API"),
            create_default_stage=True,
        )

        integration = apigwv2_integrations.HttpLambdaIntegration(
            self.context.build_resource_id("Integration"),
            handler=cast(_lambda.IFunction, calendar_lambda),
        )

        http_api.add_routes(
            path=constants.API_ROUTE_PATH,
            methods=[apigwv2.HttpMethod.GET],
            integration=integration,
        )

        return http_api

    def _build_cache_policy(
        self, header_allow_list: Sequence[str] = constants.CACHE_KEY_HEADERS
    ) -> cloudfront.CachePolicy:
        """Cache key is the path plus the headers that pick the representation (iCal vs JSON)."""
        validate_cache_key_headers(header_allow_list)
        return cloudfront.CachePolicy(
            self,
            self.context.build_resource_id("CachePolicy"),
            cache_policy_name=self.context.build_resource_name("cache-policy"),
            min_ttl=Duration.hours(constants.CACHE_MIN_TTL_HOURS),
            default_ttl=Duration.days(constants.CACHE_DEFAULT_TTL_DAYS),
            max_ttl=Duration.days(constants.CACHE_MAX_TTL_DAYS),
            enable_accept_encoding_brotli=True,
            enable_accept_encoding_gzip=True,
            header_behavior=cloudfront.CacheHeaderBehavior.allow_list(*header_allow_list),
            cookie_behavior=cloudfront.CacheCookieBehavior.none(),
            query_string_behavior=cloudfront.CacheQueryStringBehavior.none(),
        )

    def _build_distribution(
        self,
        http_api: apigwv2.HttpApi,
        cache_policy: cloudfront.ICachePolicy,
        certificate: acm.ICertificate,
    ) -> cloudfront.Distribution:
        return cloudfront.Distribution(
            self,
            self.context.build_resource_id("Distribution"),
            comment=self.context.build_resource_name("distribution"),
            domain_names=[self.config.domain_name],
            certificate=certificate,
            default_behavior=cloudfront.BehaviorOptions(
                origin=origins.HttpOrigin(
                    self.context.build_execute_api_domain(http_api.api_id)
                ),
                viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
                allowed_methods=cloudfront.AllowedMethods.ALLOW_GET_HEAD,
                # The API only answers to its own execute-api hostname
                origin_request_policy=cloudfront.OriginRequestPolicy.ALL_VIEWER_EXCEPT_HOST_HEADER,
                cache_policy=cache_policy,
            ),
        )

    def _build_github_oidc_provider(self) -> iam.OpenIdConnectProvider:
        return iam.OpenIdConnectProvider(
            self,
            self.context.build_resource_id("GithubProvider"),
            url=constants.GITHUB_OIDC_URL,
            client_ids=[constants.GITHUB_OIDC_AUDIENCE],
        )

    def _build_github_deploy_role(
        self, provider: iam.IOpenIdConnectProvider
    ) -> iam.Role:
        """Role GitHub Actions on main assumes to hand off to the CDK bootstrap roles."""
        subject = (
            f"repo:{self.config.github_owner}/{self.config.github_repo}:"
            f"{constants.GITHUB_REF_FILTER}"
        )
        return iam.Role(
            self,
            self.context.build_resource_id("DeployRole"),
            description="Allows GitHub Actions on main to deploy trashcal with CDK",
            assumed_by=iam.FederatedPrincipal(
                provider.open_id_connect_provider_arn,
                conditions={
                    "StringEquals": {
                        "token.actions.githubusercontent.com:aud": constants.GITHUB_OIDC_AUDIENCE,
                    },
                    "StringLike": {
                        "token.actions.githubusercontent.com:sub": subject,
                    },
                },
                assume_role_action="sts:AssumeRoleWithWebIdentity",
            ),
            inline_policies={
                constants.DEPLOYMENT_POLICY_NAME: iam.PolicyDocument(
                    assign_sids=True,
                    statements=[
                        iam.PolicyStatement(
                            effect=iam.Effect.ALLOW,
                            actions=["sts:AssumeRole"],
                            resources=[
                                self.context.build_role_arn_pattern(
                                    constants.CDK_ROLE_PREFIX
                                )
                            ],
                        )
                    ],
                )
            },
        )
