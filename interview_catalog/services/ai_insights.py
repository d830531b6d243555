"""Service for generating problem study insights using AI, with a rule-based fallback."""

import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError as PydanticValidationError

from interview_catalog.models.problem_models import Problem, ProblemInsights
from interview_catalog.utils.config import Settings, get_settings
from interview_catalog.utils.prompts import INSIGHTS_SYSTEM_PROMPT, get_insights_prompt

logger = logging.getLogger(__name__)

# Tag -> (concept, data structure, algorithm) used when the AI call fails
_TAG_HINTS: Dict[str, tuple] = {
    "array": ("Array Traversal", "Array", "Linear Scan"),
    "hash table": ("Lookup by Key", "Hash Map", "Counting"),
    "string": ("String Manipulation", "String Builder", "Two Pointers"),
    "two pointers": ("Two Pointers", "Array", "Two Pointers"),
    "sliding window": ("Sliding Window", "Hash Map", "Sliding Window"),
    "linked list": ("Pointer Manipulation", "Linked List", "Fast and Slow Pointers"),
    "tree": ("Tree Recursion", "Binary Tree", "Depth-First Search"),
    "binary search tree": ("Ordered Tree Invariant", "Binary Search Tree", "In-order Traversal"),
    "graph": ("Graph Traversal", "Adjacency List", "Breadth-First Search"),
    "dfs": ("Graph Traversal", "Stack", "Depth-First Search"),
    "bfs": ("Level-by-level Exploration", "Queue", "Breadth-First Search"),
    "heap": ("Top-K Selection", "Priority Queue", "Heap Operations"),
    "dynamic programming": ("Optimal Substructure", "DP Table", "Dynamic Programming"),
    "greedy": ("Greedy Choice", "Array", "Greedy"),
    "sorting": ("Ordering", "Array", "Sorting"),
    "binary search": ("Search Space Reduction", "Array", "Binary Search"),
    "design": ("API Design", "Hash Map", "Amortized Analysis"),
    "stack": ("Last-In First-Out Processing", "Stack", "Monotonic Stack"),
    "union find": ("Connectivity", "Disjoint Set", "Union-Find"),
    "recursion": ("Recursive Decomposition", "Call Stack", "Recursion"),
}


def _unique(items: List[str], limit: int) -> List[str]:
    return list(dict.fromkeys(i for i in items if i))[:limit]


class AIInsightsService:
    """Generate key concepts, data structures, algorithms and a hint for a problem."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or get_settings()
        self.client = client
        if self.client is None and self.settings.openai_api_key:
            self.client = AsyncOpenAI(api_key=self.settings.openai_api_key)

    async def generate_insights(self, problem: Problem, description: str = "") -> ProblemInsights:
        """Ask the model for insights; fall back to tag-derived insights on any failure."""
        if self.client is None:
            logger.warning("OPENAI_API_KEY not set; using fallback insights")
            return self._fallback_insights(problem)

        try:
            response = await self.client.chat.completions.create(
                model=self.settings.openai_model,
                messages=[
                    {"role": "system", "content": INSIGHTS_SYSTEM_PROMPT},
                    {"role": "user", "content": get_insights_prompt(problem, description)},
                ],
                temperature=self.settings.openai_temperature,
                max_tokens=self.settings.openai_max_tokens,
                response_format={"type": "json_object"},
            )
            ai_result = json.loads(response.choices[0].message.content or "{}")
            return self._transform_ai_response(ai_result)
        except (OpenAIError, json.JSONDecodeError, PydanticValidationError, KeyError, IndexError) as e:
            logger.error("AI insights failed for %s: %s", problem.id, e)
            return self._fallback_insights(problem)

    def _transform_ai_response(self, ai_result: Dict[str, Any]) -> ProblemInsights:
        # Trim over-long lists rather than rejecting an otherwise good answer
        return ProblemInsights(
            keyConcepts=list(ai_result.get("keyConcepts", []))[:4],
            commonDataStructures=list(ai_result.get("commonDataStructures", []))[:3],
            commonAlgorithms=list(ai_result.get("commonAlgorithms", []))[:3],
            highLevelHint=str(ai_result.get("highLevelHint", "")).strip(),
            generatedBy="ai",
        )

    def _fallback_insights(self, problem: Problem) -> ProblemInsights:
        hints = [_TAG_HINTS[t.lower()] for t in problem.tags if t.lower() in _TAG_HINTS]
        concepts = _unique([h[0] for h in hints] or list(problem.tags), 4)
        structures = _unique([h[1] for h in hints], 3)
        algorithms = _unique([h[2] for h in hints], 3)
        return ProblemInsights(
            keyConcepts=concepts or ["Problem Decomposition"],
            commonDataStructures=structures or ["Array"],
            commonAlgorithms=algorithms or ["Brute Force, then Optimize"],
            highLevelHint=(
                "Start from the simplest correct approach, then ask which repeated work "
                "a better data structure could remove."
            ),
            generatedBy="fallback",
        )


_ai_insights_service: Optional[AIInsightsService] = None


def get_ai_insights_service() -> AIInsightsService:
    global _ai_insights_service
    if _ai_insights_service is None:
        _ai_insights_service = AIInsightsService()
    return _ai_insights_service
