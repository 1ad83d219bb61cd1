"""
Prompt templates for LLM re-ranking.
"""

from talentmatch.data.models.candidate import CandidateStub
from talentmatch.utils.constants import MAX_PROFILE_CHARS_FOR_RERANK, MAX_TOP_SKILLS, NOT_AVAILABLE

RERANK_SYSTEM_PROMPT = """You are an expert AI recruitment assistant specializing in evaluating candidate profiles against job descriptions.
You provide a precise match score and a concise, insightful justification for every candidate you are given.
You always reply with a single JSON object and nothing else."""

RERANK_PROMPT = """Evaluate each of the {candidate_count} candidate(s) below against this job.

Job Description:
{job_description}

Company Information:
{company_information}

Candidates:
{candidates}

For every candidate:
1. Determine a match score between 0.0 and 1.0, where 1.0 represents a perfect alignment. Consider the candidate's skills, years of experience, specific tool/technology proficiency and how well they meet the stated qualifications and responsibilities.
2. Provide a clear justification for the score in 5-6 lines, highlighting the most critical factors (positive and negative) and referencing both the profile and the job requirements.

Reply with a JSON object of exactly this shape, with one entry per candidate, using the Candidate ID values given above:
{{"candidates": [{{"candidate_id": "<Candidate ID>", "match_score": 0.0, "justification": "<5-6 lines>"}}]}}"""


def format_candidate(candidate: CandidateStub) -> str:
    """Render one candidate as a prompt block."""
    summary = candidate.profile_summary_excerpt or NOT_AVAILABLE
    if len(summary) > MAX_PROFILE_CHARS_FOR_RERANK:
        summary = summary[:MAX_PROFILE_CHARS_FOR_RERANK] + "..."
    skills = ", ".join(candidate.skills[:MAX_TOP_SKILLS]) or NOT_AVAILABLE

    return (
        f"Candidate ID: {candidate.candidate_id}\n"
        f"Name: {candidate.full_name}\n"
        f"Current Title: {candidate.current_title}\n"
        f"Key Skills: {skills}\n"
        f"Availability: {candidate.availability or NOT_AVAILABLE}\n"
        f"Profile Summary: {summary}"
    )


def format_candidates(candidates: list[CandidateStub]) -> str:
    return "\n\n---\n\n".join(format_candidate(c) for c in candidates)


def build_rerank_prompt(
    job_description: str,
    company_information: str,
    candidates: list[CandidateStub],
) -> str:
    return RERANK_PROMPT.format(
        candidate_count=len(candidates),
        job_description=job_description.strip(),
        company_information=company_information.strip() or NOT_AVAILABLE,
        candidates=format_candidates(candidates),
    )
