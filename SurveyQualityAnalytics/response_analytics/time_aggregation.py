"""
Time-bucketed response aggregation: period counts, weekday/hour heatmap and
question completion funnel.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Union, Tuple, Sequence

import pandas as pd

from ..data_processing.data_loader import DataLoader, to_utc_timestamp
from ..data_processing.exceptions import ValidationError
from ..data_processing.models import (
    Question, ResponseRecord, TimePeriod, PeriodCount, HeatmapCell, FunnelStage, DAY_NAMES
)
from .question_analyzers import is_empty_answer, percentage


# pandas period frequency and label format per bucket size
PERIOD_FORMATS: Dict[TimePeriod, Tuple[str, str]] = {
    TimePeriod.HOUR: ('h', '%Y-%m-%d %H:00'),
    TimePeriod.DAY: ('D', '%Y-%m-%d'),
    TimePeriod.WEEK: ('W-SUN', '%G-W%V'),
    TimePeriod.MONTH: ('M', '%Y-%m'),
}


class TimeAggregator:
    """
    Aggregates response submissions over time.

    Features:
    - Dense counts per hour, day, ISO week or month
    - 7x24 weekday/hour heatmap
    - Per-question completion funnel with drop-off
    """

    def __init__(self, precision: int = 1):
        self.precision = precision
        self.data_loader = DataLoader()
        self.logger = logging.getLogger(__name__)

    def aggregate_by_time_period(self,
                                 responses: Sequence[ResponseRecord],
                                 period: Union[TimePeriod, str],
                                 start: datetime,
                                 end: datetime) -> List[PeriodCount]:
        """
        Count responses per time bucket between ``start`` and ``end`` (inclusive).

        Parameters
        ----------
        responses : sequence of ResponseRecord
            Responses to count
        period : TimePeriod or str
            Bucket size: hour, day, week (ISO, Monday-based) or month
        start, end : datetime
            Window bounds; naive values are taken as UTC

        Returns
        -------
        list of PeriodCount
            One entry per bucket overlapping the window, in time order,
            including empty buckets
        """
        try:
            period = TimePeriod(period)
        except ValueError as e:
            raise ValidationError(f"Unsupported time period: {period!r}") from e

        start_ts = to_utc_timestamp(start)
        end_ts = to_utc_timestamp(end)
        if start_ts > end_ts:
            raise ValidationError("Start of the aggregation window is after its end")

        freq, label_format = PERIOD_FORMATS[period]

        submitted = self._submitted_between(responses, start_ts, end_ts)
        counts = submitted.dt.tz_localize(None).dt.to_period(freq).value_counts()

        buckets = pd.period_range(
            start=start_ts.tz_localize(None), end=end_ts.tz_localize(None), freq=freq
        )

        results = []
        for bucket in buckets:
            bucket_start = bucket.start_time
            results.append(PeriodCount(
                label=bucket_start.strftime(label_format),
                start=bucket_start.tz_localize('UTC').to_pydatetime(),
                count=int(counts.get(bucket, 0))
            ))

        self.logger.debug(f"Aggregated {len(submitted)} responses into {len(results)} "
                          f"{period.value} buckets")

        return results

    def generate_heatmap(self,
                         responses: Sequence[ResponseRecord],
                         start: Optional[datetime] = None,
                         end: Optional[datetime] = None) -> List[List[HeatmapCell]]:
        """
        Weekday x hour grid of response counts (UTC).

        Rows run Sunday to Saturday (``y`` 0-6), columns hour 0-23 (``x``).
        """
        start_ts = to_utc_timestamp(start) if start is not None else None
        end_ts = to_utc_timestamp(end) if end is not None else None
        submitted = self._submitted_between(responses, start_ts, end_ts)

        weekday = ((submitted.dt.dayofweek + 1) % 7).rename('weekday')
        hours = submitted.dt.hour.rename('hour')
        counts = pd.crosstab(weekday, hours) if len(submitted) else pd.DataFrame()

        heatmap = []
        for day, day_name in enumerate(DAY_NAMES):
            row = []
            for hour in range(24):
                value = 0
                if day in counts.index and hour in counts.columns:
                    value = int(counts.loc[day, hour])
                row.append(HeatmapCell(x=hour, y=day, value=value, label=f"{day_name} {hour}:00"))
            heatmap.append(row)

        return heatmap

    def calculate_funnel(self,
                         questions: Sequence[Question],
                         responses: Sequence[ResponseRecord]) -> List[FunnelStage]:
        """
        Completion count and rate per question, in question order.

        Drop-off is the fall in completion rate from the previous question
        (0 for the first). Returns an empty list when there are no responses.
        """
        if not responses:
            return []

        total = len(responses)
        funnel: List[FunnelStage] = []

        for question in questions:
            completed = sum(
                1 for response in responses
                if not is_empty_answer(response.answer_for(question.id))
            )
            rate = percentage(completed, total, self.precision)
            dropoff = round(funnel[-1].completion_rate - rate, self.precision) if funnel else 0.0

            funnel.append(FunnelStage(
                question_id=question.id,
                question_text=question.text or 'Untitled Question',
                completion_count=completed,
                completion_rate=rate,
                dropoff_rate=dropoff
            ))

        return funnel

    def _submitted_between(self,
                           responses: Sequence[ResponseRecord],
                           start: Optional[pd.Timestamp],
                           end: Optional[pd.Timestamp]) -> pd.Series:
        submitted = self.data_loader.responses_to_frame(responses)['submitted_at']
        if start is not None:
            submitted = submitted[submitted >= start]
        if end is not None:
            submitted = submitted[submitted <= end]
        return submitted
