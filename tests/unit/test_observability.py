from typing import Any, Mapping

import pytest
from aws_cdk.assertions import Template
from stack_test_helpers import deployment, template
from common.alarm_model import (
    AlarmModel,
    AlarmState,
    MetricFilterModel,
    TreatMissingData,
    notifies,
)

PANIC_LINE = (
    '{"level":"ERROR","message":"thread \'main\' panicked at src/pickup.rs:42:9"}'
)
SUCCESS_LINE = '{"level":"INFO","fields":{"message":"Returning calendar as iCal"}}'
QUIET_LINE = '{"level":"INFO","fields":{"message":"Getting trashcal"}}'


def _single(template: Template, resource_type: str, metric_name: str = None) -> Mapping[str, Any]:
    resources = template.find_resources(resource_type)
    matching = [
        resource["Properties"]
        for resource in resources.values()
        if metric_name is None
        or resource["Properties"]["MetricTransformations"][0]["MetricName"] == metric_name
    ]
    (props,) = matching
    return props


@pytest.fixture
def panic_filter(template: Template) -> MetricFilterModel:
    return MetricFilterModel.from_properties(
        _single(template, "AWS::Logs::MetricFilter", "panics")
    )


@pytest.fixture
def success_filter(template: Template) -> MetricFilterModel:
    return MetricFilterModel.from_properties(
        _single(template, "AWS::Logs::MetricFilter", "total")
    )


@pytest.fixture
def panic_alarm(template: Template) -> AlarmModel:
    return AlarmModel.from_properties(_single(template, "AWS::CloudWatch::Alarm"))


# ------------------- Pipeline as deployed -------------------


def test_single_panic_trips_the_alarm(panic_filter, panic_alarm):
    datapoint = panic_alarm.datapoint(panic_filter.samples([QUIET_LINE, PANIC_LINE, SUCCESS_LINE]))
    assert datapoint == 1
    assert panic_alarm.evaluate([datapoint]) is AlarmState.ALARM


def test_no_log_lines_is_not_an_alarm(panic_filter, panic_alarm):
    datapoint = panic_alarm.datapoint(panic_filter.samples([]))
    assert datapoint is None
    assert panic_alarm.evaluate([datapoint]) is AlarmState.OK


def test_healthy_traffic_is_not_an_alarm(panic_filter, success_filter, panic_alarm):
    lines = [QUIET_LINE, SUCCESS_LINE, SUCCESS_LINE]
    assert success_filter.samples(lines) == [1.0, 1.0]
    assert panic_alarm.evaluate([panic_alarm.datapoint(panic_filter.samples(lines))]) is AlarmState.OK


def test_only_latest_period_is_evaluated(panic_filter, panic_alarm):
    earlier = panic_alarm.datapoint(panic_filter.samples([PANIC_LINE]))
    latest = panic_alarm.datapoint(panic_filter.samples([SUCCESS_LINE]))
    assert panic_alarm.evaluate([earlier, latest], previous=AlarmState.ALARM) is AlarmState.OK


def test_notification_fires_only_on_transition_into_alarm(panic_filter, panic_alarm):
    previous = AlarmState.INSUFFICIENT_DATA
    transitions = []
    for lines in ([], [PANIC_LINE], [PANIC_LINE], [], [PANIC_LINE]):
        current = panic_alarm.evaluate(
            [panic_alarm.datapoint(panic_filter.samples(lines))], previous=previous
        )
        transitions.append(notifies(previous, current))
        previous = current
    assert transitions == [False, True, False, False, True]


def test_filters_match_whole_phrase(success_filter):
    assert success_filter.terms == ("Returning calendar",)
    assert not success_filter.matches("Returning a calendar")
    assert success_filter.matches("Returning calendar as JSON")


# ------------------- Alarm model -------------------


@pytest.mark.parametrize(
    "treat_missing_data,previous,expected",
    [
        (TreatMissingData.NOT_BREACHING, AlarmState.ALARM, AlarmState.OK),
        (TreatMissingData.BREACHING, AlarmState.OK, AlarmState.ALARM),
        (TreatMissingData.IGNORE, AlarmState.ALARM, AlarmState.ALARM),
        (TreatMissingData.MISSING, AlarmState.OK, AlarmState.INSUFFICIENT_DATA),
    ],
)
def test_missing_data_handling(treat_missing_data, previous, expected):
    alarm = AlarmModel(threshold=1, treat_missing_data=treat_missing_data)
    assert alarm.evaluate([None], previous=previous) is expected


def test_datapoints_to_alarm_over_several_periods():
    alarm = AlarmModel(
        threshold=1,
        evaluation_periods=3,
        datapoints_to_alarm=2,
        treat_missing_data="notBreaching",
    )
    assert alarm.evaluate([1, None, None]) is AlarmState.OK
    assert alarm.evaluate([1, None, 3]) is AlarmState.ALARM


def test_json_filter_patterns_are_not_modelled():
    with pytest.raises(ValueError, match="term filter"):
        MetricFilterModel.from_properties(
            {
                "FilterPattern": '{ $.level = "ERROR" }',
                "MetricTransformations": [
                    {"MetricNamespace": "n", "MetricName": "m", "MetricValue": "1"}
                ],
            }
        )


def test_panic_alarm_counts_occurrences(template: Template):
    props = _single(template, "AWS::CloudWatch::Alarm")
    assert props["Statistic"] == "Sum"
    assert props["Period"] == 300


def test_repeated_panics_add_up_within_a_period(template: Template, panic_filter):
    # A higher threshold only holds if the period value is a count, not a mean
    props = _single(template, "AWS::CloudWatch::Alarm")
    alarm = AlarmModel.from_properties({**props, "Threshold": 2})
    assert alarm.datapoint(panic_filter.samples([PANIC_LINE, PANIC_LINE])) == 2
    assert alarm.evaluate(
        [alarm.datapoint(panic_filter.samples([PANIC_LINE, PANIC_LINE]))]
    ) is AlarmState.ALARM
    assert alarm.evaluate(
        [alarm.datapoint(panic_filter.samples([PANIC_LINE]))]
    ) is AlarmState.OK


@pytest.mark.parametrize(
    "statistic,expected",
    [("Sum", 3.0), ("SampleCount", 3.0), ("Average", 1.0), ("Maximum", 1.0)],
)
def test_datapoint_follows_alarm_statistic(statistic, expected):
    alarm = AlarmModel(threshold=1, statistic=statistic)
    assert alarm.datapoint([1.0, 1.0, 1.0]) == expected


def test_averaged_panics_never_exceed_one():
    alarm = AlarmModel(threshold=2, statistic="Average")
    assert alarm.evaluate([alarm.datapoint([1.0, 1.0])]) is AlarmState.OK


@pytest.mark.parametrize(
    "statistic_props",
    [{"ExtendedStatistic": "p99"}, {"Statistic": "Median"}],
    ids=["percentile", "unknown"],
)
def test_unsupported_statistics_are_rejected(statistic_props):
    props = {
        "Threshold": 1,
        "Period": 300,
        "ComparisonOperator": "GreaterThanOrEqualToThreshold",
        "EvaluationPeriods": 1,
        **statistic_props,
    }
    with pytest.raises(ValueError, match="statistics are supported"):
        AlarmModel.from_properties(props)
