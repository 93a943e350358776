"""
Token budget for query results forwarded to the model.

Token counts are estimates: the default estimator counts whitespace-delimited
words. The estimate only decides whether an optional second query round is
run and kept, so a real tokenizer can be swapped in through TokenEstimator
without touching the policy.
"""
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from json_assistant.schemas.responses import CollectedResults, SynthesisResult
from json_assistant.services.formatting import format_query_round

logger = logging.getLogger(__name__)


class TokenEstimator(ABC):
    @abstractmethod
    def estimate(self, text: str) -> int:
        """Approximate the number of model tokens in text."""


class WordCountEstimator(TokenEstimator):
    def estimate(self, text: str) -> int:
        return len(text.split())


def estimate_tokens(text: str) -> int:
    return WordCountEstimator().estimate(text)


class TokenBudgetPolicy:
    """
    Ceilings for the query results given to the answer model.

    Args:
        max_result_tokens: A first round at or above this size skips the second round
        max_total_tokens: Both rounds together must stay within this size to keep the second
        estimator: Token estimator, word count by default
    """

    def __init__(self, max_result_tokens: int, max_total_tokens: int, estimator: Optional[TokenEstimator] = None):
        if max_result_tokens > max_total_tokens:
            raise ValueError("max_result_tokens must not exceed max_total_tokens")
        self.max_result_tokens = max_result_tokens
        self.max_total_tokens = max_total_tokens
        self.estimator = estimator or WordCountEstimator()

    @classmethod
    def from_config(cls, config, estimator: Optional[TokenEstimator] = None) -> "TokenBudgetPolicy":
        return cls(config.max_result_tokens, config.max_total_tokens, estimator)

    def estimate(self, text: str) -> int:
        return self.estimator.estimate(text)

    def should_run_second_round(self, first_round_tokens: int) -> bool:
        return first_round_tokens < self.max_result_tokens

    def fits_combined(self, first_round_tokens: int, second_round_tokens: int) -> bool:
        return first_round_tokens + second_round_tokens <= self.max_total_tokens


RoundRunner = Callable[[], Awaitable[SynthesisResult]]


class TokenBudgetCoordinator:
    """Runs the primary query round and, budget permitting, the exploratory one."""

    def __init__(self, policy: TokenBudgetPolicy):
        self.policy = policy

    async def collect(self, run_first_round: RoundRunner, run_second_round: RoundRunner) -> CollectedResults:
        """
        Gather query results for answer synthesis.

        The second round only starts after the first round's estimate is
        evaluated.

        Raises:
            SynthesisExhausted: If either round runs out of attempts
        """
        first = await run_first_round()
        results_text = format_query_round(first.sql, first.results_text)
        first_tokens = self.policy.estimate(results_text)
        collected = CollectedResults(
            results_text=results_text,
            queries=[first.sql],
            first_round_tokens=first_tokens,
        )

        if not self.policy.should_run_second_round(first_tokens):
            logger.info(
                "Skipping second query because the first result is already too large. Estimated tokens: %d",
                first_tokens,
            )
            return collected

        collected.second_round_run = True
        second = await run_second_round()

        second_text = format_query_round(second.sql, second.results_text, leading_newline=True)
        second_tokens = self.policy.estimate(second_text)
        if self.policy.fits_combined(first_tokens, second_tokens):
            collected.results_text += second_text
            collected.queries.append(second.sql)
            collected.second_round_kept = True
        else:
            logger.info(
                "Skipping second result as it exceeds the token limit. Total tokens: %d",
                first_tokens + second_tokens,
            )
        return collected
