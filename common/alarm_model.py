"""Offline model of CloudWatch metric filters and alarms.

Built from synthesized ``AWS::Logs::MetricFilter`` and
``AWS::CloudWatch::Alarm`` properties so the detection behaviour of the
pipeline can be checked without deploying it.
"""
import re
import shlex
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

from attrs import define, field


class AlarmState(str, Enum):
    OK = "OK"
    ALARM = "ALARM"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


class TreatMissingData(str, Enum):
    BREACHING = "breaching"
    NOT_BREACHING = "notBreaching"
    IGNORE = "ignore"
    MISSING = "missing"


_STATISTICS = {
    "Sum": sum,
    "SampleCount": len,
    "Average": lambda samples: sum(samples) / len(samples),
    "Maximum": max,
    "Minimum": min,
}

_COMPARISONS = {
    "GreaterThanOrEqualToThreshold": lambda value, threshold: value >= threshold,
    "GreaterThanThreshold": lambda value, threshold: value > threshold,
    "LessThanThreshold": lambda value, threshold: value < threshold,
    "LessThanOrEqualToThreshold": lambda value, threshold: value <= threshold,
}


@define(slots=True, frozen=True)
class MetricFilterModel:
    """Unstructured-text filter: every term must appear in the log line."""

    terms: tuple[str, ...]
    metric_namespace: str
    metric_name: str
    metric_value: float = 1.0

    @classmethod
    def from_properties(cls, props: Mapping[str, Any]) -> "MetricFilterModel":
        pattern = props["FilterPattern"]
        if re.search(r"[{}\[\]?]", pattern):
            raise ValueError(f"Only term filter patterns are supported: {pattern!r}")
        (transformation,) = props["MetricTransformations"]
        return cls(
            terms=tuple(shlex.split(pattern)),
            metric_namespace=transformation["MetricNamespace"],
            metric_name=transformation["MetricName"],
            metric_value=float(transformation["MetricValue"]),
        )

    def matches(self, line: str) -> bool:
        return all(term in line for term in self.terms)

    def samples(self, lines: Iterable[str]) -> list[float]:
        """Values published for one period, one per matching line."""
        return [self.metric_value for line in lines if self.matches(line)]


@define(slots=True, frozen=True)
class AlarmModel:
    threshold: float
    statistic: str = field(default="Sum")
    period: int = field(default=300)
    comparison_operator: str = field(default="GreaterThanOrEqualToThreshold")
    evaluation_periods: int = field(default=1)
    datapoints_to_alarm: Optional[int] = field(default=None)
    treat_missing_data: TreatMissingData = field(
        default=TreatMissingData.MISSING, converter=TreatMissingData
    )

    @classmethod
    def from_properties(cls, props: Mapping[str, Any]) -> "AlarmModel":
        statistic = props.get("Statistic")
        if statistic not in _STATISTICS:
            raise ValueError(
                f"Only {', '.join(_STATISTICS)} statistics are supported: "
                f"{statistic or props.get('ExtendedStatistic')!r}"
            )
        return cls(
            threshold=float(props["Threshold"]),
            statistic=statistic,
            period=int(props["Period"]),
            comparison_operator=props["ComparisonOperator"],
            evaluation_periods=int(props["EvaluationPeriods"]),
            datapoints_to_alarm=props.get("DatapointsToAlarm"),
            treat_missing_data=props.get("TreatMissingData", TreatMissingData.MISSING),
        )

    def datapoint(self, samples: Sequence[float]) -> Optional[float]:
        """Aggregate one period of samples with the alarm statistic; None when nothing was published."""
        if not samples:
            return None
        return float(_STATISTICS[self.statistic](samples))

    def is_breaching(self, value: float) -> bool:
        return _COMPARISONS[self.comparison_operator](value, self.threshold)

    def evaluate(
        self,
        datapoints: Sequence[Optional[float]],
        previous: AlarmState = AlarmState.INSUFFICIENT_DATA,
    ) -> AlarmState:
        """State after the most recent ``evaluation_periods`` datapoints.

        ``None`` marks a period with no data.
        """
        window = list(datapoints[-self.evaluation_periods :])
        window = [None] * (self.evaluation_periods - len(window)) + window
        required = self.datapoints_to_alarm or self.evaluation_periods

        if all(value is None for value in window):
            if self.treat_missing_data is TreatMissingData.BREACHING:
                return AlarmState.ALARM
            if self.treat_missing_data is TreatMissingData.NOT_BREACHING:
                return AlarmState.OK
            if self.treat_missing_data is TreatMissingData.IGNORE:
                return previous
            return AlarmState.INSUFFICIENT_DATA

        breaching = 0
        for value in window:
            if value is None:
                breaching += self.treat_missing_data is TreatMissingData.BREACHING
            elif self.is_breaching(value):
                breaching += 1
        return AlarmState.ALARM if breaching >= required else AlarmState.OK


def notifies(previous: AlarmState, current: AlarmState) -> bool:
    """Alarm actions only fire on a transition into ALARM."""
    return current is AlarmState.ALARM and previous is not AlarmState.ALARM
