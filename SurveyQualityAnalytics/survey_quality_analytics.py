"""
Main Survey Quality Analytics class.

This module provides the primary interface for response quality control and
survey analytics, wiring the response store, quality classifier, analytics
aggregator, time aggregation, forecasting, pattern detection and attention
scoring components together.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union, Tuple, Any

import pandas as pd

from .config import AnalyticsConfig, load_config
from .data_processing import (
    DataLoader, ResponseStore, Question, ResponseRecord, QualityRule,
    QualityStatus, QualityAuditLogEntry, ClassificationResult, SurveyAnalyticsReport,
    TimePeriod, PatternReport, AttentionReport
)
from .data_processing.models import PeriodCount, HeatmapCell, FunnelStage, ForecastPoint
from .descriptive_analysis import StatisticsEngine
from .quality_control import QualityClassifier
from .response_analytics import AnalyticsAggregator, TimeAggregator
from .trend_analysis import ResponseForecaster, PatternDetector, AttentionScorer


class SurveyQualityAnalytics:
    """
    Survey response quality control and analytics.

    This is the main interface that integrates all components, providing a
    unified API from response loading through quality review and reporting.

    Features:
    - Response loading from dict payloads, JSON and CSV files
    - Completion-time quality classification with manual overrides
    - Audit log of every status transition
    - Per-question analytics, timelines and demographics
    - Hour/day/week/month aggregation, heatmap and completion funnel
    - Response volume forecasting
    - Correlation, trend, group-difference and outlier patterns
    - Survey health (attention) scoring
    """

    def __init__(self,
                 store: Optional[ResponseStore] = None,
                 config: Optional[AnalyticsConfig] = None,
                 config_path: Optional[str] = None,
                 log_level: Optional[str] = None):
        """
        Initialize Survey Quality Analytics.

        Parameters
        ----------
        store : ResponseStore, optional
            Data-access collaborator; an empty in-memory store by default
        config : AnalyticsConfig, optional
            Configuration; takes precedence over ``config_path``
        config_path : str, optional
            Path to a JSON configuration file
        log_level : str, optional
            Logging level; defaults to the configured level ('INFO')
        """
        self.config = config or load_config(config_path)

        # Setup logging
        logging.basicConfig(
            level=getattr(logging, (log_level or self.config.log_level).upper()),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        self.logger = logging.getLogger(__name__)

        # Initialize components
        self.store = store if store is not None else ResponseStore()
        self.data_loader = DataLoader()
        self.statistics_engine = StatisticsEngine(
            exact_p_values=self.config.exact_p_values,
            stable_slope_threshold=self.config.stable_slope_threshold
        )
        self.classifier = QualityClassifier(
            self.store, default_min_completion_time=self.config.default_min_completion_time
        )
        self.aggregator = AnalyticsAggregator(
            statistics_engine=self.statistics_engine,
            timeline_days=self.config.timeline_days,
            text_sample_size=self.config.text_sample_size,
            text_truncate_length=self.config.text_truncate_length,
            precision=self.config.percentage_precision
        )
        self.time_aggregator = TimeAggregator(precision=self.config.percentage_precision)
        self.forecaster = ResponseForecaster(
            self.statistics_engine, trend_threshold=self.config.forecast_trend_threshold
        )
        self.pattern_detector = PatternDetector(self.statistics_engine)
        self.attention_scorer = AttentionScorer(self.time_aggregator)

        # Survey question lists, keyed by survey id
        self.questions: Dict[str, List[Question]] = {}
        self.analysis_results: Dict[str, Dict[str, Any]] = {}

        self.logger.info("Survey Quality Analytics initialized successfully")

    # ------------------------------------------------------------------
    # Data loading
    # ------------------------------------------------------------------

    def register_survey(self, survey_id: str, questions: List[Union[Question, Dict[str, Any]]]) -> List[Question]:
        """Attach a question list to a survey, parsing dict payloads."""
        parsed = [q if isinstance(q, Question) else self.data_loader.parse_question(q)
                  for q in questions]
        self.questions[survey_id] = parsed
        return parsed

    def load_survey_data(self,
                         file_path: Union[str, Path],
                         survey_id: Optional[str] = None,
                         classify: bool = True) -> Tuple[List[Question], List[ResponseRecord]]:
        """
        Load questions and responses from a JSON or CSV file into the store.

        Parameters
        ----------
        file_path : str or Path
            Path to the survey export
        survey_id : str, optional
            Survey the responses belong to when the file does not say
        classify : bool, default True
            Run a classification pass for each loaded survey

        Returns
        -------
        tuple
            (questions, responses)
        """
        self.logger.info(f"Loading survey data from {file_path}")

        try:
            questions, responses = self.data_loader.load_file(file_path, survey_id=survey_id)
        except Exception as e:
            self.logger.error(f"Failed to load survey data: {e}")
            raise

        self.store.add_responses(responses)

        survey_ids = {response.survey_id for response in responses}
        if survey_id is not None:
            survey_ids.add(survey_id)
        for sid in sorted(survey_ids):
            if questions:
                self.questions[sid] = questions
            if classify:
                self.classify_survey(sid)

        self.logger.info(f"Successfully loaded {len(responses)} responses and "
                         f"{len(questions)} questions")

        return questions, responses

    def submit_response(self, response: Union[ResponseRecord, Dict[str, Any]]) -> ResponseRecord:
        """Store a new submission and classify it against its survey's rule."""
        if not isinstance(response, ResponseRecord):
            response = self.data_loader.parse_response(response)

        self.store.add_response(response)
        self.classifier.classify_response(response.id)
        return response

    # ------------------------------------------------------------------
    # Quality control
    # ------------------------------------------------------------------

    def classify_survey(self, survey_id: str) -> ClassificationResult:
        """
        Run a classification pass with the survey's rule.

        A survey without a rule is classified with a new default rule.
        """
        rule = self.store.get_rule(survey_id)
        if rule is None:
            rule = QualityRule(survey_id=survey_id,
                               min_completion_time=self.config.default_min_completion_time)

        result = self.classifier.classify(survey_id, rule)
        self.analysis_results.setdefault(survey_id, {})['classification'] = result
        return result

    def override_classification(self,
                                response_id: str,
                                user_id: str,
                                new_status: Union[QualityStatus, str],
                                reason: Optional[str] = None) -> ResponseRecord:
        return self.classifier.override_classification(response_id, user_id, new_status, reason)

    def update_rules(self, survey_id: str, user_id: str, updates: Dict[str, Any]) -> QualityRule:
        return self.classifier.update_rules(survey_id, user_id, updates)

    def get_quality_filtered_responses(self,
                                       survey_id: str,
                                       include_quality: bool = True,
                                       include_low_quality: bool = False) -> List[ResponseRecord]:
        return self.classifier.get_quality_filtered_responses(
            survey_id, include_quality, include_low_quality
        )

    def get_flagged_responses(self, survey_id: str) -> List[ResponseRecord]:
        return self.classifier.get_flagged_responses(survey_id)

    def get_quality_rules(self, survey_id: str) -> Optional[QualityRule]:
        return self.classifier.get_quality_rules(survey_id)

    def get_audit_log(self, survey_id: str, limit: Optional[int] = None) -> List[QualityAuditLogEntry]:
        return self.classifier.get_audit_log(survey_id, limit or self.config.audit_log_limit)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def survey_analytics(self,
                         survey_id: str,
                         questions: Optional[List[Question]] = None,
                         quality_only: bool = False,
                         end: Optional[datetime] = None,
                         view_count: Optional[int] = None) -> SurveyAnalyticsReport:
        """
        Generate the analytics payload for a survey.

        Parameters
        ----------
        survey_id : str
            Survey to analyze
        questions : list of Question, optional
            Question list; defaults to the one registered for the survey
        quality_only : bool, default False
            Restrict the analysis to responses not classified as low quality
        end : datetime, optional
            Last day of the timeline window; defaults to today (UTC)
        view_count : int, optional
            Measured survey views, replacing the completion rate estimate

        Returns
        -------
        SurveyAnalyticsReport
            Aggregated analytics
        """
        questions = questions if questions is not None else self.questions.get(survey_id, [])
        responses = self._responses(survey_id, quality_only)

        try:
            report = self.aggregator.aggregate(survey_id, questions, responses,
                                               end=end, view_count=view_count)
        except Exception as e:
            self.logger.error(f"Analytics aggregation failed: {e}")
            raise

        self.analysis_results.setdefault(survey_id, {})['analytics'] = report
        return report

    def response_trends(self,
                        survey_id: str,
                        period: Union[TimePeriod, str] = TimePeriod.DAY,
                        start: Optional[datetime] = None,
                        end: Optional[datetime] = None,
                        quality_only: bool = False) -> List[PeriodCount]:
        """Response counts per period; the window defaults to the trailing timeline days."""
        end = end if end is not None else pd.Timestamp.now(tz='UTC').to_pydatetime()
        if start is None:
            start = (pd.Timestamp(end) - pd.Timedelta(days=self.config.timeline_days)).to_pydatetime()

        trends = self.time_aggregator.aggregate_by_time_period(
            self._responses(survey_id, quality_only), period, start, end
        )
        self.analysis_results.setdefault(survey_id, {})['trends'] = trends
        return trends

    def response_heatmap(self,
                         survey_id: str,
                         start: Optional[datetime] = None,
                         end: Optional[datetime] = None,
                         quality_only: bool = False) -> List[List[HeatmapCell]]:
        heatmap = self.time_aggregator.generate_heatmap(
            self._responses(survey_id, quality_only), start, end
        )
        self.analysis_results.setdefault(survey_id, {})['heatmap'] = heatmap
        return heatmap

    def response_funnel(self,
                        survey_id: str,
                        questions: Optional[List[Question]] = None,
                        quality_only: bool = False) -> List[FunnelStage]:
        questions = questions if questions is not None else self.questions.get(survey_id, [])
        funnel = self.time_aggregator.calculate_funnel(
            questions, self._responses(survey_id, quality_only)
        )
        self.analysis_results.setdefault(survey_id, {})['funnel'] = funnel
        return funnel

    def forecast_responses(self,
                           survey_id: str,
                           days_ahead: int = 7,
                           end: Optional[datetime] = None,
                           quality_only: bool = False) -> List[ForecastPoint]:
        """Forecast daily responses from the survey's trailing timeline."""
        history = self.aggregator.build_timeline(self._responses(survey_id, quality_only), end=end)
        forecast = self.forecaster.forecast_responses(history, days_ahead)
        self.analysis_results.setdefault(survey_id, {})['forecast'] = forecast
        return forecast

    def detect_patterns(self,
                        survey_id: str,
                        questions: Optional[List[Question]] = None,
                        quality_only: bool = False) -> PatternReport:
        """
        Detect correlations, trends, group differences and anomalies.

        Parameters
        ----------
        survey_id : str
            Survey to analyze
        questions : list of Question, optional
            Question list; defaults to the one registered for the survey
        quality_only : bool, default False
            Restrict the analysis to responses not classified as low quality

        Returns
        -------
        PatternReport
            Patterns per kind, strongest first
        """
        questions = questions if questions is not None else self.questions.get(survey_id, [])

        try:
            patterns = self.pattern_detector.detect_patterns(
                survey_id, questions, self._responses(survey_id, quality_only)
            )
        except Exception as e:
            self.logger.error(f"Pattern detection failed: {e}")
            raise

        self.analysis_results.setdefault(survey_id, {})['patterns'] = patterns
        return patterns

    def attention_score(self,
                        survey_id: str,
                        questions: Optional[List[Question]] = None,
                        now: Optional[datetime] = None) -> AttentionReport:
        """Score how urgently a survey needs attention, over all of its responses."""
        questions = questions if questions is not None else self.questions.get(survey_id, [])
        report = self.attention_scorer.assess(
            survey_id, questions, self.store.find_responses(survey_id), now=now
        )
        self.analysis_results.setdefault(survey_id, {})['attention'] = report
        return report

    def surveys_needing_attention(self,
                                  threshold: int = 30,
                                  now: Optional[datetime] = None) -> List[AttentionReport]:
        """Registered surveys scoring at least ``threshold``, highest score first."""
        reports = [self.attention_score(survey_id, now=now) for survey_id in sorted(self.questions)]
        flagged = [report for report in reports if report.attention_score >= threshold]
        return sorted(flagged, key=lambda report: report.attention_score, reverse=True)

    def get_analysis_summary(self) -> Dict[str, Any]:
        """
        Get summary of all completed analyses.

        Returns
        -------
        dict
            Per-survey response counts, quality counters and analyses run
        """
        survey_ids = sorted(set(self.questions) | set(self.analysis_results))

        summary = {
            'n_surveys': len(survey_ids),
            'surveys': {}
        }

        for survey_id in survey_ids:
            survey_summary = {
                'n_questions': len(self.questions.get(survey_id, [])),
                'n_responses': self.store.count_responses(survey_id),
                'analyses_completed': list(self.analysis_results.get(survey_id, {}).keys()),
                'has_quality_rule': False
            }

            rule = self.store.get_rule(survey_id)
            if rule is not None:
                survey_summary['has_quality_rule'] = True
                survey_summary['min_completion_time'] = rule.min_completion_time
                survey_summary['total_flagged'] = rule.total_flagged
                survey_summary['total_overridden'] = rule.total_overridden

            report = self.analysis_results.get(survey_id, {}).get('analytics')
            if report is not None:
                survey_summary['completion_rate'] = report.completion_rate
                survey_summary['trend'] = report.trend.trend.value

            patterns = self.analysis_results.get(survey_id, {}).get('patterns')
            if patterns is not None:
                survey_summary['n_patterns'] = len(patterns.all_patterns())

            attention = self.analysis_results.get(survey_id, {}).get('attention')
            if attention is not None:
                survey_summary['attention_score'] = attention.attention_score

            summary['surveys'][survey_id] = survey_summary

        return summary

    def _responses(self, survey_id: str, quality_only: bool) -> List[ResponseRecord]:
        if quality_only:
            return self.classifier.get_quality_filtered_responses(survey_id)
        return self.store.find_responses(survey_id)
