from __future__ import annotations

COVER_LETTER_PROMPT = """
You write a professional cover letter for a job application.
Use only the facts given below; do not invent employers, degrees or numbers.
Write 3-4 short paragraphs with a salutation and closing, no placeholder text,
and return only the letter body.

Job title: {job_title}
Company: {company}
Applicant name: {applicant_name}

Job description:
{job_description}

Applicant background:
{applicant_background}
""".strip()
