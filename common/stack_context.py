from attrs import define, field
from aws_cdk import RemovalPolicy, Stack, Token, aws_logs as logs
from typing import Optional

import common.constants as constants


@define(slots=True, frozen=True)
class StackContext:
    scope: Stack
    env: str = field(
        default=constants.DEFAULT_ENV,
        metadata={"description": "Deployment environment (dev, staging, prod)"},
    )
    service: str = field(default=constants.SERVICE_NAME, init=False)
    component: str = field(default=constants.COMPONENT)

    @property
    def aws_account_id(self) -> str:
        return Stack.of(self.scope).account

    @property
    def aws_region(self) -> str:
        return Stack.of(self.scope).region

    @property
    def aws_partition(self) -> str:
        return Stack.of(self.scope).partition

    # ---------- endpoints ----------
    def build_execute_api_domain(self, api_id: str) -> str:
        """Regional execute-api hostname CloudFront forwards to."""
        region = self.aws_region
        if not region or Token.is_unresolved(region):
            raise ValueError(
                "AWS region is not set, unable to resolve the execute-api domain"
            )
        return f"{api_id}.execute-api.{region}.amazonaws.com"

    def build_role_arn_pattern(self, role_prefix: str) -> str:
        """IAM role ARN pattern matching every role whose name starts with the prefix."""
        return f"arn:{self.aws_partition}:iam::{self.aws_account_id}:role/{role_prefix}*"

    # ---------- naming ----------
    def build_resource_name(
        self, resource_type: str, action: Optional[str] = None
    ) -> str:
        """Build resource name with optional action.

        Examples:
            - Without action: trashcal-calendar-function-prod
            - With action: trashcal-calendar-panics-alarm-prod
        """
        if action:
            return f"{self.service}-{self.component}-{action}-{resource_type}-{self.env}".lower()
        return f"{self.service}-{self.component}-{resource_type}-{self.env}".lower()

    def build_resource_id(self, resource_type: str, action: Optional[str] = None) -> str:
        """Build resource ID with optional action.

        Examples:
            - Without action: TrashcalCalendarFunction
            - With action: TrashcalCalendarPanicsAlarm
        """
        if action:
            return (
                f"{self.service.capitalize()}"
                f"{self.component.capitalize()}"
                f"{action.capitalize()}"
                f"{resource_type.capitalize()}"
            )
        return (
            f"{self.service.capitalize()}"
            f"{self.component.capitalize()}"
            f"{resource_type.capitalize()}"
        )

    def build_log_group(
        self,
        function_name: str,
        retention: logs.RetentionDays = constants.LOG_RETENTION,
    ) -> logs.LogGroup:
        """Log group Lambda writes to, named after the function it belongs to."""
        return logs.LogGroup(
            self.scope,
            self.build_resource_id("LogGroup"),
            log_group_name=f"/aws/lambda/{function_name}",
            removal_policy=RemovalPolicy.DESTROY,
            retention=retention,
        )
