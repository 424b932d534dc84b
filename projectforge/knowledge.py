"""Knowledge base: learnings from earlier runs, reused when planning new ones."""

import hashlib
import json
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import KNOWLEDGE_LEARNING_ENABLED, KNOWLEDGE_MAX_ITEMS, KNOWLEDGE_RELEVANT_LIMIT
from .llm import call_llm, to_json
from .log import get_logger
from .models import KnowledgeItem

logger = get_logger(__name__)

CATEGORIES = ("patterns", "insights", "best_practices", "technologies")

KEY_PREFIXES = {
    "patterns": "pattern",
    "insights": "insight",
    "best_practices": "practice",
    "technologies": "tech",
}

STRENGTH_INCREASE = 1.1
STRENGTH_DECREASE = 0.9

NO_KNOWLEDGE_MESSAGE = "No relevant knowledge found for this context"

EXTRACTION_PROMPT = """You are a knowledge extraction expert. Extract key learnings from this project and its results.

Respond with JSON:
{
  "success_patterns": ["patterns that led to success"],
  "failure_patterns": ["patterns that led to issues"],
  "technical_insights": ["technical insights"],
  "market_insights": ["market insights"],
  "team_insights": ["team collaboration insights"],
  "process_insights": ["process improvement insights"],
  "technology_learnings": ["technology-specific learnings"],
  "best_practices": ["best practices discovered"],
  "anti_patterns": ["anti-patterns to avoid"],
  "key_success_factors": ["factors critical to success"],
  "improvement_opportunities": ["areas for future improvement"]
}"""

PATTERN_ANALYSIS_PROMPT = """You are a pattern recognition expert. Analyze this project and its results to identify patterns.

Respond with JSON:
{
  "emerging_patterns": ["new patterns identified"],
  "confirmed_patterns": ["patterns confirmed by this project"],
  "contradicted_patterns": ["patterns contradicted by this project"],
  "pattern_strength_updates": [
    {
      "pattern": "pattern description",
      "strength_change": "increased|decreased|unchanged",
      "evidence": "evidence for the change"
    }
  ]
}"""

SYNTHESIS_PROMPT = """You are a knowledge synthesizer. Combine relevant knowledge into actionable insights for this project context.

Respond with JSON:
{
  "key_recommendations": ["key recommendations based on knowledge"],
  "success_predictors": ["factors that predict success"],
  "risk_indicators": ["risk indicators to watch"],
  "best_practices_to_apply": ["best practices most relevant to this context"],
  "technologies_to_consider": ["technology recommendations"],
  "patterns_to_leverage": ["success patterns to leverage"],
  "patterns_to_avoid": ["failure patterns to avoid"],
  "confidence_level": "high|medium|low",
  "knowledge_gaps": ["areas where more knowledge is needed"]
}"""

# (learning field, category, kind)
LEARNING_FIELDS = (
    ("success_patterns", "patterns", "success"),
    ("failure_patterns", "patterns", "failure"),
    ("technical_insights", "insights", "technical"),
    ("market_insights", "insights", "market"),
    ("best_practices", "best_practices", "practice"),
    ("technology_learnings", "technologies", "technology"),
)

_WORD = re.compile(r"[a-z0-9]+")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _words(value: Any) -> set:
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    return {word for word in _WORD.findall(text.lower()) if len(word) > 3}


def knowledge_key(category: str, content: Any) -> str:
    digest = hashlib.sha1(json.dumps(content, sort_keys=True, default=str).encode("utf-8")).hexdigest()
    return f"{KEY_PREFIXES[category]}_{digest[:12]}"


class KnowledgeBase:
    """
    Learnings grouped into four categories, each a dict of key -> KnowledgeItem.

    Every category is ordered least recently touched first. When a category
    grows past ``max_items`` the weakest item is evicted, ties going to the
    one touched longest ago. The item being stored is never the one evicted.
    """

    def __init__(self, max_items: int = KNOWLEDGE_MAX_ITEMS, learning_enabled: bool = KNOWLEDGE_LEARNING_ENABLED):
        self.max_items = max_items
        self.learning_enabled = learning_enabled
        self.knowledge: Dict[str, Dict[str, KnowledgeItem]] = {category: {} for category in CATEGORIES}

    # ---- storing ----

    def store(self, category: str, kind: str, content: Any) -> KnowledgeItem:
        """Store one learning; repeating a learning raises its strength by one."""
        items = self.knowledge[category]
        key = knowledge_key(category, content)
        item = items.pop(key, None)
        if item is None:
            item = KnowledgeItem(key=key, kind=kind, content=content)
        else:
            item.strength += 1
        item.last_touched = _now()
        items[key] = item
        self._evict(category, keep=key)
        return item

    def _evict(self, category: str, keep: Optional[str] = None):
        items = self.knowledge[category]
        while len(items) > self.max_items:
            candidates = [item for item in items.values() if item.key != keep]
            weakest = min(candidates, key=lambda item: item.strength)
            del items[weakest.key]
            logger.debug(f"Evicted {weakest.key} from {category}")

    def categorize_and_store(self, learnings: Dict[str, Any]) -> int:
        stored = 0
        for field, category, kind in LEARNING_FIELDS:
            for entry in learnings.get(field) or []:
                if entry:
                    self.store(category, kind, entry)
                    stored += 1
        return stored

    async def store_project_learnings(
        self,
        project: Dict[str, Any],
        results: Dict[str, Any],
        feedback: Optional[Dict[str, Any]] = None,
    ):
        """Extract learnings from a finished run and fold them into the store."""
        if not self.learning_enabled:
            return

        logger.info("Knowledge base: storing project learnings")
        learnings = await self.extract_learnings(project, results, feedback)
        stored = self.categorize_and_store(learnings)
        await self.update_patterns(project, results)
        logger.info(f"Knowledge base: stored {stored} learnings")

    async def extract_learnings(
        self,
        project: Dict[str, Any],
        results: Dict[str, Any],
        feedback: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        feedback_text = to_json(feedback) if feedback else "No feedback provided"
        return await call_llm(
            EXTRACTION_PROMPT,
            f"Project:\n{to_json(project)}\n\n"
            f"Results:\n{to_json(results)}\n\n"
            f"Feedback:\n{feedback_text}\n\n"
            "Extract comprehensive learnings from this project experience.",
        )

    async def update_patterns(self, project: Dict[str, Any], results: Dict[str, Any]):
        analysis = await call_llm(
            PATTERN_ANALYSIS_PROMPT,
            f"Project:\n{to_json(project)}\n\n"
            f"Results:\n{to_json(results)}\n\n"
            "Analyze patterns and their validation from this project.",
        )
        self.update_pattern_strengths(analysis)

    def update_pattern_strengths(self, analysis: Dict[str, Any]):
        """Scale known patterns by x1.1 ("increased") or x0.9 ("decreased"); unknown patterns are ignored."""
        patterns = self.knowledge["patterns"]
        for update in analysis.get("pattern_strength_updates") or []:
            if not isinstance(update, dict):
                continue
            item = patterns.get(knowledge_key("patterns", update.get("pattern")))
            if item is None:
                continue

            change = str(update.get("strength_change", "")).lower()
            if change == "increased":
                item.strength *= STRENGTH_INCREASE
            elif change == "decreased":
                item.strength *= STRENGTH_DECREASE
            if update.get("evidence"):
                item.evidence.append(str(update["evidence"]))
            item.last_touched = _now()
            patterns[item.key] = patterns.pop(item.key)

    # ---- retrieval ----

    def relevant_items(self, category: str, context: Any, limit: int = KNOWLEDGE_RELEVANT_LIMIT) -> List[KnowledgeItem]:
        """Items sharing at least one word longer than three letters with ``context``, strongest first."""
        context_words = _words(context)
        matches = [
            item for item in self.knowledge[category].values()
            if context_words & _words(item.content)
        ]
        matches.sort(key=lambda item: item.strength, reverse=True)
        return matches[:limit]

    async def get_relevant_knowledge(self, project_context: Any) -> Dict[str, Any]:
        logger.info("Knowledge base: retrieving relevant knowledge")
        relevant = {
            category: [item.model_dump() for item in self.relevant_items(category, project_context)]
            for category in CATEGORIES
        }
        relevant["synthesis"] = await self.synthesize_knowledge(project_context, relevant)
        return relevant

    async def synthesize_knowledge(self, context: Any, relevant: Dict[str, List[Any]]) -> Dict[str, Any]:
        if not any(relevant.get(category) for category in CATEGORIES):
            return {"message": NO_KNOWLEDGE_MESSAGE}

        return await call_llm(
            SYNTHESIS_PROMPT,
            f"Project Context:\n{to_json(context)}\n\n"
            f"Relevant Knowledge:\n{to_json({c: relevant[c] for c in CATEGORIES})}\n\n"
            "Synthesize this knowledge into actionable insights for the current project.",
        )

    # ---- maintenance ----

    def export_knowledge(self) -> Dict[str, Any]:
        exported: Dict[str, Any] = {
            category: [item.model_dump() for item in self.knowledge[category].values()]
            for category in CATEGORIES
        }
        exported["export_date"] = _now()
        return exported

    def import_knowledge(self, data: Dict[str, Any]):
        """Replace every category present in ``data``; absent categories are left alone."""
        for category in CATEGORIES:
            if data.get(category) is None:
                continue
            items = [
                entry if isinstance(entry, KnowledgeItem) else KnowledgeItem.model_validate(entry)
                for entry in data[category]
            ]
            items.sort(key=lambda item: item.last_touched)
            self.knowledge[category] = {item.key: item for item in items}
            self._evict(category)

    def clear_knowledge(self):
        self.knowledge = {category: {} for category in CATEGORIES}

    def get_knowledge_stats(self) -> Dict[str, int]:
        stats = {category: len(self.knowledge[category]) for category in CATEGORIES}
        stats["total_knowledge_items"] = sum(stats.values())
        return stats

    def save(self, path: str):
        """Write a JSON snapshot of the store."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.export_knowledge(), f, indent=2)

    def load(self, path: str) -> bool:
        """
        Load a snapshot written by ``save``.

        Returns:
            False if no snapshot exists at ``path``
        """
        if not os.path.exists(path):
            return False

        with open(path, 'r') as f:
            self.import_knowledge(json.load(f))
        logger.info(f"Knowledge base: loaded {self.get_knowledge_stats()['total_knowledge_items']} items from {path}")
        return True
