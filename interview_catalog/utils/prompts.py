"""Utility functions to generate prompts for problem insights."""

from interview_catalog.models.problem_models import Problem

INSIGHTS_SYSTEM_PROMPT = (
    "You are an expert coding interview coach. You help candidates understand "
    "how to approach a problem without ever revealing its solution. Always answer "
    "with a single JSON object."
)


def get_insights_prompt(problem: Problem, description: str = "") -> str:
    """Generate the insights prompt for the given problem."""
    tags = ", ".join(problem.tags) if problem.tags else "No specific tags"
    summary = description.strip() or f"See {problem.link}"

    return f"""A user is looking for insights into the following problem:

Problem Title: {problem.title}
Difficulty: {problem.difficulty.value}
Tags: {tags}
Problem Description/Summary:
{summary}

Analyze the problem and help the user understand how to approach it, without giving away the solution.

Respond with JSON using exactly these keys:
1. "keyConcepts": 1 to 4 core concepts or problem-solving patterns (e.g. "Two Pointers", "Sliding Window", "Topological Sort").
2. "commonDataStructures": 1 to 3 data structures that are commonly useful here (e.g. "Hash Map", "Min-Heap").
3. "commonAlgorithms": 1 to 3 algorithms or techniques that often apply (e.g. "Binary Search on Answer", "BFS for Shortest Path").
4. "highLevelHint": one or two sentences that guide the user's thinking. Do NOT reveal the solution, implementation steps or pseudo-code.
"""
