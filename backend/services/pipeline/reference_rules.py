"""Canonical reference statements for semantic rule-type classification.

Statements without a cue phrase are compared against these; the category
of the closest reference wins when the similarity is high enough.
"""

from models.schemas.enums import RuleType
from models.schemas.rule import ReferenceRule

_MUST_HAVE = [
    "Solid foundation in at least one programming language such as Python, Java or C++",
    "Currently pursuing or recently completed a degree in Computer Science or a related field",
    "Understanding of data structures, algorithms and object-oriented programming",
    "Able to write clean, working code and debug it independently",
    "Basic knowledge of SQL and relational databases",
    "Good communication skills in English, written and spoken",
]

_NICE_TO_HAVE = [
    "Experience with cloud platforms such as AWS, GCP or Azure is an asset",
    "Familiarity with Docker, Kubernetes or CI/CD pipelines",
    "Contributions to open-source projects or a public GitHub portfolio",
    "Prior internship experience in a software company",
    "Exposure to machine learning frameworks like TensorFlow or PyTorch",
    "Participation in hackathons or competitive programming contests",
]

_BEST_PRACTICE = [
    "Eager to learn new technologies and take ownership of tasks",
    "Works well in a team and collaborates across functions",
    "Attention to detail and a problem-solving mindset",
    "Takes initiative and communicates progress proactively",
    "Follows code review and version control practices",
    "Adaptable in a fast-paced environment",
]

DEFAULT_REFERENCE_RULES: tuple[ReferenceRule, ...] = tuple(
    [ReferenceRule(category=RuleType.MUST_HAVE, text=t) for t in _MUST_HAVE]
    + [ReferenceRule(category=RuleType.NICE_TO_HAVE, text=t) for t in _NICE_TO_HAVE]
    + [ReferenceRule(category=RuleType.BEST_PRACTICE, text=t) for t in _BEST_PRACTICE]
)
