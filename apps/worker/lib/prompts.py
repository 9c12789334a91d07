"""
Prompt text for the two model calls.
"""

PROSE_SYSTEM_PROMPT = "You are an expert medical physician consultant reviewing records for a chronology."

PROSE_PROMPT = """
Analyze the attached medical document carefully.
Write a detailed, objective prose description of its content.

CRITICAL INSTRUCTION: cite the page number for every fact you mention.
Use the format [Page N] at the start of each sentence or directly after the fact.
If the document is a single page or image, use [Page 1] throughout.

Focus on:
1. Dates of service.
2. Patient symptoms and complaints.
3. Diagnoses made.
4. Treatments, procedures, and medications administered.
5. Lab results and other objective findings.
6. Outcomes and discharge instructions.

Write a cohesive narrative that captures every factual medical event, including
all dates and key clinical values from each page. Everything must come from the
document alone and be literally accurate.
""".strip()

CONCEPT_TAG_EXAMPLES = """
[
  {
    "text": "The patient reports severe pain for the past week; diagnosis is urinary tract infection, and a physical examination was performed during the visit.",
    "tags": ["Patients", "Pain", "week", "Diagnosis", "Urinary tract infection", "Physical Examination", "Visit"]
  },
  {
    "text": "During today's visit, the provider reviewed the patient's medical history and records and ordered magnetic resonance imaging for persistent pain.",
    "tags": ["Patients", "Visit", "Provider", "Medical History", "Records", "Magnetic Resonance Imaging", "Pain"]
  },
  {
    "text": "Diagnosis: urinary tract infection. The provider recommended pharmaceutical preparations and documented the evaluation after a physical examination.",
    "tags": ["Diagnosis", "Urinary tract infection", "Provider", "Pharmaceutical Preparations", "Physical Examination", "Evaluation"]
  }
]
""".strip()

EXTRACTION_PROMPT = f"""
Analyze the medical prose description above and break it into individual facts
for a medical chronology, grouped by date.

The prose contains page citations like [Page N].

Return a JSON object {{"entries": [...]}} with exactly one entry per unique date:
- date: YYYY-MM-DD if interpretable, otherwise the original date text
- summary: a concise one-line summary of that day or encounter
- facts: the facts for that date, in the order they appear, each with
  - time: time of day if stated
  - category: one of Diagnosis, Treatment, Symptom, Lab Result, Medication, Administrative, Other
  - detail: the full description of the fact from the prose
  - pageNumber: the integer N from the [Page N] marker supporting the fact
  - quote: a short snippet copied verbatim from the prose that supports the fact
- tags: a short list of normalized UMLS-style concepts for the day

Only include pageNumber and quote when a [Page N] marker supports the fact.

Examples of mapping text to tags:
{CONCEPT_TAG_EXAMPLES}
""".strip()
