"""Skill taxonomy and keyword detection over project paths.

A skill is detected when any of its keywords appears, case-insensitively,
anywhere in a project path. Matching is plain substring matching, so short
keywords ("ai", "go", ".js") can fire on unrelated paths.
"""

import json
import logging
from pathlib import Path

from .core import ConfigError, SkillDefinition

logger = logging.getLogger(__name__)

SKILL_CATEGORIES = ("framework", "language", "tool", "platform", "concept")


def _skill(name, category, keywords, related, path) -> SkillDefinition:
    return SkillDefinition(
        name=name,
        category=category,
        keywords=keywords,
        related_skills=related,
        learning_path=path,
    )


DEFAULT_TAXONOMY: list[SkillDefinition] = [
    # Frontend frameworks
    _skill("Next.js", "framework", ["next", "nextjs", "next.js"],
           ["React", "TypeScript", "Node.js"], ["React", "Next.js", "Next.js Advanced"]),
    _skill("React", "framework", ["react", "react-"],
           ["JavaScript", "TypeScript", "JSX"], ["JavaScript", "React", "React Hooks", "React Advanced"]),
    _skill("Vue", "framework", ["vue", "nuxt"],
           ["JavaScript", "TypeScript"], ["JavaScript", "Vue", "Vue 3", "Nuxt"]),
    _skill("Angular", "framework", ["angular", "@angular"],
           ["TypeScript", "RxJS"], ["TypeScript", "Angular", "Angular Advanced"]),
    _skill("Svelte", "framework", ["svelte", "sveltekit"],
           ["JavaScript", "TypeScript"], ["JavaScript", "Svelte", "SvelteKit"]),

    # Backend frameworks
    _skill("Express", "framework", ["express"],
           ["Node.js", "JavaScript"], ["Node.js", "Express", "REST APIs"]),
    _skill("Fastify", "framework", ["fastify"],
           ["Node.js", "JavaScript"], ["Node.js", "Fastify", "High Performance APIs"]),
    _skill("NestJS", "framework", ["nest", "@nestjs"],
           ["TypeScript", "Node.js"], ["TypeScript", "NestJS", "Microservices"]),
    _skill("Rails", "framework", ["rails", "ruby-on-rails"],
           ["Ruby", "ActiveRecord", "PostgreSQL"], ["Ruby", "Rails", "Rails Advanced"]),

    # Languages
    _skill("TypeScript", "language", ["typescript", ".ts", "tsconfig"],
           ["JavaScript", "Node.js"], ["JavaScript", "TypeScript", "TypeScript Advanced"]),
    _skill("JavaScript", "language", ["javascript", ".js", "node"],
           ["HTML", "CSS"], ["JavaScript", "ES6+", "Async/Await"]),
    _skill("Python", "language", ["python", ".py", "pip"],
           ["Django", "Flask", "FastAPI"], ["Python", "Python OOP", "Python Advanced"]),
    _skill("Ruby", "language", ["ruby", ".rb", "gemfile"],
           ["Rails"], ["Ruby", "Ruby OOP", "Rails"]),
    _skill("Go", "language", ["golang", "go.mod", "/go/"],
           ["Microservices", "Docker"], ["Go", "Go Concurrency", "Go Advanced"]),
    _skill("Rust", "language", ["rust", "cargo", ".rs"],
           ["Systems Programming"], ["Rust", "Rust Ownership", "Rust Advanced"]),

    # Tools and build systems
    _skill("Git", "tool", ["git", ".git", "github"],
           ["Version Control"], ["Git Basics", "Git Branching", "Git Advanced"]),
    _skill("Docker", "tool", ["docker", "dockerfile", "container"],
           ["DevOps", "Kubernetes"], ["Docker", "Docker Compose", "Kubernetes"]),
    _skill("Webpack", "tool", ["webpack", "webpack.config"],
           ["JavaScript", "Build Tools"], ["Webpack", "Webpack Optimization"]),
    _skill("Vite", "tool", ["vite", "vite.config"],
           ["JavaScript", "Build Tools"], ["Vite", "Vite Advanced"]),

    # Databases
    _skill("PostgreSQL", "platform", ["postgres", "postgresql", "psql"],
           ["SQL", "Database Design"], ["SQL", "PostgreSQL", "Database Optimization"]),
    _skill("MongoDB", "platform", ["mongo", "mongodb"],
           ["NoSQL", "Database Design"], ["MongoDB", "Mongoose", "MongoDB Advanced"]),
    _skill("Redis", "platform", ["redis"],
           ["Caching", "In-Memory Databases"], ["Redis", "Redis Advanced"]),

    # Cloud
    _skill("AWS", "platform", ["aws", "amazon-web-services", "s3", "ec2", "lambda"],
           ["Cloud", "DevOps"], ["AWS Basics", "AWS Services", "AWS Architecture"]),
    _skill("Vercel", "platform", ["vercel"],
           ["Next.js", "Deployment"], ["Vercel", "Edge Functions"]),

    # Testing
    _skill("Vitest", "tool", ["vitest"],
           ["Testing", "JavaScript"], ["Testing Basics", "Vitest", "Advanced Testing"]),
    _skill("Jest", "tool", ["jest"],
           ["Testing", "JavaScript"], ["Testing Basics", "Jest", "Advanced Testing"]),

    # Concepts
    _skill("AI/ML", "concept", ["ai", "ml", "machine-learning", "neural", "llm"],
           ["Python", "TensorFlow", "PyTorch"], ["ML Basics", "Deep Learning", "Production ML"]),
    _skill("Web Audio", "concept", ["audio", "tone.js", "web-audio", "sound", "music"],
           ["JavaScript", "Signal Processing"], ["Web Audio API", "Audio Processing", "Music Theory"]),
    _skill("Claude Code", "tool", ["claude", "claude-code", "anthropic"],
           ["AI-Assisted Development", "Prompt Engineering"],
           ["Claude Basics", "Prompt Optimization", "Claude Advanced"]),
]


def load_taxonomy(path: Path | str) -> list[SkillDefinition]:
    """Load a taxonomy from a JSON array of skill objects.

    Each object needs "name", "category" and "keywords"; "related_skills"
    and "learning_path" are optional. Raises ConfigError on a malformed file.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read taxonomy {path}: {e}") from e

    if not isinstance(data, list):
        raise ConfigError(f"Taxonomy {path} must be a JSON array")

    taxonomy = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ConfigError(f"Taxonomy entry {i} in {path} is not an object")
        name = entry.get("name")
        category = entry.get("category")
        keywords = entry.get("keywords")
        if not isinstance(name, str) or not name:
            raise ConfigError(f"Taxonomy entry {i} in {path} has no name")
        if category not in SKILL_CATEGORIES:
            raise ConfigError(f"Skill {name!r} has unknown category {category!r}")
        if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
            raise ConfigError(f"Skill {name!r} needs a list of keyword strings")
        taxonomy.append(SkillDefinition(
            name=name,
            category=category,
            keywords=keywords,
            related_skills=list(entry.get("related_skills", [])),
            learning_path=list(entry.get("learning_path", [])),
        ))

    logger.debug("Loaded %d skills from %s", len(taxonomy), path)
    return taxonomy


def detect_skills(project_path: str, taxonomy: list[SkillDefinition] | None = None) -> list[str]:
    """Return the names of skills whose keywords occur in the path, in taxonomy order."""
    if taxonomy is None:
        taxonomy = DEFAULT_TAXONOMY
    lower_path = project_path.lower()
    return [
        skill.name
        for skill in taxonomy
        if any(keyword.lower() in lower_path for keyword in skill.keywords)
    ]


def get_skill_definition(
    name: str, taxonomy: list[SkillDefinition] | None = None
) -> SkillDefinition | None:
    """Look up a skill by name, ignoring case."""
    if taxonomy is None:
        taxonomy = DEFAULT_TAXONOMY
    lowered = name.lower()
    for skill in taxonomy:
        if skill.name.lower() == lowered:
            return skill
    return None


def skills_in_category(category: str, taxonomy: list[SkillDefinition] | None = None) -> list[SkillDefinition]:
    if taxonomy is None:
        taxonomy = DEFAULT_TAXONOMY
    return [s for s in taxonomy if s.category == category]
