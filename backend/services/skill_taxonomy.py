"""Skill vocabulary, synonyms and categories.

Used by the entity analyzer's heuristic fallback (vocabulary scan) and by the
skill assessor (category buckets).
"""

import re

from rapidfuzz import fuzz, process

# ---------------------------------------------------------------------------
# Known technical skill vocabulary. Ambiguous English words ("go", "rest",
# "less", "c") are left out to keep the fallback precise.
# ---------------------------------------------------------------------------
TECH_SKILLS: frozenset[str] = frozenset({
    # Programming languages
    "python", "javascript", "typescript", "java", "c++", "c#",
    "golang", "rust", "ruby", "php", "swift", "kotlin", "scala",
    "matlab", "sql", "perl", "haskell", "lua", "dart", "elixir",
    "clojure", "groovy", "objective-c", "bash", "powershell",
    # Frontend
    "react", "react native", "angular", "vue", "svelte",
    "next.js", "nuxt", "gatsby", "html", "css", "tailwind",
    "bootstrap", "sass", "scss", "webpack", "vite", "jquery",
    # Backend
    "node.js", "express", "fastapi", "django", "flask",
    "spring boot", "rails", "ruby on rails", ".net", "asp.net",
    "graphql", "grpc", "laravel", "symfony",
    # Cloud & DevOps
    "aws", "azure", "gcp", "heroku", "vercel", "netlify",
    "docker", "kubernetes", "terraform", "ansible", "puppet",
    "jenkins", "github actions", "gitlab ci", "circleci",
    "ci/cd", "linux", "nginx", "helm", "prometheus", "grafana",
    # Databases
    "postgresql", "mysql", "mongodb", "redis", "elasticsearch",
    "kafka", "rabbitmq", "sqlite", "oracle", "dynamodb",
    "cassandra", "neo4j", "snowflake", "bigquery", "redshift",
    "firebase",
    # Data & ML
    "pandas", "numpy", "scipy", "scikit-learn", "tensorflow",
    "pytorch", "keras", "spark", "hadoop", "airflow", "tableau",
    "machine learning", "deep learning", "natural language processing",
    "computer vision",
    # Tools
    "git", "jira", "figma", "postman",
    # Methodologies
    "agile", "scrum", "kanban", "microservices", "serverless",
    # Testing
    "jest", "cypress", "selenium", "playwright", "pytest", "junit",
    # Soft skills
    "communication", "leadership", "teamwork", "problem solving",
})

# Aliases -> canonical form
SKILL_SYNONYMS: dict[str, str] = {
    "js": "javascript", "es6": "javascript",
    "ts": "typescript",
    "react.js": "react", "reactjs": "react",
    "vue.js": "vue", "vuejs": "vue",
    "angularjs": "angular", "angular.js": "angular",
    "node": "node.js", "nodejs": "node.js",
    "nextjs": "next.js",
    "express.js": "express", "expressjs": "express",
    "python3": "python",
    "sklearn": "scikit-learn",
    "k8s": "kubernetes",
    "postgres": "postgresql",
    "mongo": "mongodb",
    "csharp": "c#",
    "cpp": "c++",
    "ml": "machine learning",
    "nlp": "natural language processing",
    "problem-solving": "problem solving",
}

SKILL_CATEGORIES: dict[str, tuple[str, ...]] = {
    "programming": ("javascript", "python", "java", "c++", "typescript", "go", "rust"),
    "frontend": ("react", "angular", "vue", "html", "css", "sass"),
    "backend": ("node", "express", "django", "flask", "spring", "laravel"),
    "database": ("mysql", "postgresql", "mongodb", "redis", "sqlite"),
    "devops": ("docker", "kubernetes", "aws", "azure", "gcp", "terraform"),
    "soft": ("communication", "leadership", "teamwork", "problem solving"),
}

# Single-word vocabulary terms considered for typo-tolerant matching
_FUZZY_VOCAB: tuple[str, ...] = tuple(sorted(s for s in TECH_SKILLS if " " not in s and len(s) >= 6))
FUZZY_THRESHOLD = 88


def canonicalize(term: str) -> str:
    """Resolve a term to its canonical form via the synonym dictionary."""
    lower = re.sub(r"\s+", " ", term.lower().strip())
    return SKILL_SYNONYMS.get(lower, lower)


def categorize(skill_name: str) -> str:
    """Bucket a skill by keyword membership.

    Whole-token matches win over substring matches, so "django" lands in
    backend rather than in programming via "go".
    """
    lower = re.sub(r"\s+", " ", skill_name.lower().strip())
    tokens = set(re.split(r"[^a-z0-9+#]+", lower))
    for category, keywords in SKILL_CATEGORIES.items():
        if lower in keywords or tokens.intersection(keywords):
            return category
    for category, keywords in SKILL_CATEGORIES.items():
        if any(k in lower for k in keywords):
            return category
    return "other"


def scan_skills(text: str, fuzzy: bool = True) -> list[str]:
    """Find vocabulary skills in free text.

    Exact matches use word-boundary regexes so "java" does not fire inside
    "javascript". With ``fuzzy`` on, long single tokens that are near-misses
    of a vocabulary term (e.g. "Kubernates") are also accepted.
    Returns canonical names in order of first appearance.
    """
    text_lower = text.lower()
    found: dict[str, int] = {}

    for skill in TECH_SKILLS | set(SKILL_SYNONYMS):
        escaped = re.escape(skill)
        match = re.search(rf"(?<![a-z0-9.#+]){escaped}(?![a-z0-9+#])", text_lower)
        if match:
            canonical = canonicalize(skill)
            found[canonical] = min(found.get(canonical, match.start()), match.start())

    if fuzzy:
        for token in re.finditer(r"[a-z][a-z+#.-]{5,}", text_lower):
            word = token.group(0).rstrip(".")
            if word in TECH_SKILLS or word in SKILL_SYNONYMS:
                continue
            best = process.extractOne(word, _FUZZY_VOCAB, scorer=fuzz.ratio, score_cutoff=FUZZY_THRESHOLD)
            if best is not None:
                found.setdefault(best[0], token.start())

    return sorted(found, key=found.get)
