import pytest

from services.skill_taxonomy import canonicalize, categorize, scan_skills


def test_canonicalize_synonyms():
    assert canonicalize("ReactJS") == "react"
    assert canonicalize("k8s") == "kubernetes"
    assert canonicalize("  Node ") == "node.js"
    assert canonicalize("elixir") == "elixir"


@pytest.mark.parametrize(
    "skill,category",
    [
        ("Python", "programming"),
        ("django", "backend"),
        ("Vue", "frontend"),
        ("PostgreSQL", "database"),
        ("terraform", "devops"),
        ("Problem Solving", "soft"),
        ("figma", "other"),
    ],
)
def test_categorize(skill, category):
    assert categorize(skill) == category


def test_scan_skills_respects_word_boundaries():
    skills = scan_skills("Built SPAs in JavaScript and React.js with Docker", fuzzy=False)
    assert skills == ["javascript", "react", "docker"]
    assert "java" not in skills


def test_scan_skills_fuzzy_typo():
    assert "kubernetes" in scan_skills("Deployed services on Kubernates clusters")


def test_scan_skills_no_matches():
    assert scan_skills("Enjoys hiking and cooking", fuzzy=False) == []
