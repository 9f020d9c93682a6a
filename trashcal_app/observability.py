from aws_cdk import (
    Duration,
    aws_cloudwatch as cloudwatch,
    aws_cloudwatch_actions as cloudwatch_actions,
    aws_logs as logs,
    aws_sns as sns,
    aws_sns_subscriptions as subscriptions,
)
from constructs import Construct

import common.constants as constants
from common.stack_context import StackContext


class ObservabilityPipeline(Construct):
    """Log-derived metrics for the calendar function and a panic alarm that e-mails a human.

    The function's log lines are the only contract: ``Returning calendar`` on
    every served calendar and ``panicked`` when the runtime crashes.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        context: StackContext,
        log_group: logs.ILogGroup,
        email: str,
    ) -> None:
        super().__init__(scope, construct_id)
        self.context = context

        self.success_filter = self._build_metric_filter(
            log_group,
            metric_name=constants.SUCCESS_METRIC_NAME,
            phrase=constants.SUCCESS_LOG_PHRASE,
        )
        self.failure_filter = self._build_metric_filter(
            log_group,
            metric_name=constants.FAILURE_METRIC_NAME,
            phrase=constants.FAILURE_LOG_PHRASE,
        )
        self.failure_alarm = self._build_failure_alarm(self.failure_filter)
        self.topic = self._build_notification_topic(email)

        # No OK action: recovery is a human reading the e-mail
        self.failure_alarm.add_alarm_action(cloudwatch_actions.SnsAction(self.topic))

    def _build_metric_filter(
        self, log_group: logs.ILogGroup, *, metric_name: str, phrase: str
    ) -> logs.MetricFilter:
        return logs.MetricFilter(
            self,
            self.context.build_resource_id("MetricFilter", action=metric_name),
            log_group=log_group,
            metric_namespace=constants.METRIC_NAMESPACE,
            metric_name=metric_name,
            filter_pattern=logs.FilterPattern.all_terms(phrase),
            metric_value="1",
        )

    def _build_failure_alarm(self, failure_filter: logs.MetricFilter) -> cloudwatch.Alarm:
        """Any single panic in one evaluation period trips the alarm."""
        return cloudwatch.Alarm(
            self,
            self.context.build_resource_id(
                "Alarm", action=constants.FAILURE_METRIC_NAME
            ),
            alarm_name=self.context.build_resource_name(
                "alarm", action=constants.FAILURE_METRIC_NAME
            ),
            alarm_description="The calendar function panicked",
            metric=failure_filter.metric(
                statistic=cloudwatch.Stats.SUM, period=Duration.minutes(5)
            ),
            evaluation_periods=1,
            threshold=1,
            comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
            # No log lines means no traffic, not a failure
            treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING,
            actions_enabled=True,
        )

    def _build_notification_topic(self, email: str) -> sns.Topic:
        topic = sns.Topic(
            self,
            self.context.build_resource_id("Topic", action=constants.FAILURE_METRIC_NAME),
            topic_name=self.context.build_resource_name(
                "topic", action=constants.FAILURE_METRIC_NAME
            ),
        )
        topic.add_subscription(subscriptions.EmailSubscription(email))
        return topic
