"""Enhancement agent: applies category-specific improvements to a plan."""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .llm import call_llm, to_json
from .log import get_logger
from .web_search import WebSearchAgent

logger = get_logger(__name__)


class EnhancementCategory(str, Enum):
    TECHNICAL_OPTIMIZATION = "technical_optimization"
    ARCHITECTURE_IMPROVEMENT = "architecture_improvement"
    PERFORMANCE_ENHANCEMENT = "performance_enhancement"
    SECURITY_STRENGTHENING = "security_strengthening"
    USER_EXPERIENCE_OPTIMIZATION = "user_experience_optimization"
    SCALABILITY_IMPROVEMENT = "scalability_improvement"
    MAINTAINABILITY_ENHANCEMENT = "maintainability_enhancement"
    COST_OPTIMIZATION = "cost_optimization"

    @classmethod
    def parse(cls, raw: Any) -> Optional["EnhancementCategory"]:
        if not isinstance(raw, str):
            return None
        normalized = raw.strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            return None


APPLIED_PRIORITIES = ("critical", "high")


def _prompt(role: str, fields: Dict[str, str]) -> str:
    body = ",\n".join(f'  "{key}": {value}' for key, value in fields.items())
    return f"{role}\n\nRespond with JSON:\n{{\n{body}\n}}"


CATEGORY_PROMPTS = {
    EnhancementCategory.TECHNICAL_OPTIMIZATION: _prompt(
        "You are a technical optimization expert. Enhance the project's technical aspects.",
        {
            "optimized_architecture": '"enhanced architecture description"',
            "performance_improvements": '["performance enhancements"]',
            "code_quality_enhancements": '["code quality improvements"]',
            "technology_upgrades": '["technology upgrade recommendations"]',
            "optimization_strategies": '["optimization strategies"]',
            "implementation_details": '["implementation details"]',
            "expected_benefits": '["expected benefits"]',
        },
    ),
    EnhancementCategory.ARCHITECTURE_IMPROVEMENT: _prompt(
        "You are a software architect. Improve the project's architecture design.",
        {
            "improved_architecture": '"enhanced architecture design"',
            "design_patterns": '["recommended design patterns"]',
            "component_structure": '"improved component structure"',
            "data_flow_optimization": '"optimized data flow design"',
            "integration_improvements": '["integration improvements"]',
            "scalability_enhancements": '["scalability improvements"]',
            "maintainability_improvements": '["maintainability enhancements"]',
        },
    ),
    EnhancementCategory.PERFORMANCE_ENHANCEMENT: _prompt(
        "You are a performance optimization expert. Enhance the project's performance characteristics.",
        {
            "performance_optimizations": '["performance optimizations"]',
            "caching_strategies": '["caching strategies"]',
            "database_optimizations": '["database optimizations"]',
            "frontend_optimizations": '["frontend optimizations"]',
            "backend_optimizations": '["backend optimizations"]',
            "monitoring_enhancements": '["performance monitoring improvements"]',
            "benchmarking_strategy": '"performance benchmarking approach"',
        },
    ),
    EnhancementCategory.SECURITY_STRENGTHENING: _prompt(
        "You are a cybersecurity expert. Strengthen the project's security posture.",
        {
            "security_enhancements": '["security improvements"]',
            "vulnerability_mitigations": '["vulnerability mitigations"]',
            "authentication_improvements": '["authentication enhancements"]',
            "authorization_enhancements": '["authorization improvements"]',
            "data_protection_measures": '["data protection measures"]',
            "security_monitoring": '["security monitoring enhancements"]',
            "compliance_considerations": '["compliance improvements"]',
        },
    ),
    EnhancementCategory.USER_EXPERIENCE_OPTIMIZATION: _prompt(
        "You are a UX/UI expert. Optimize the project's user experience.",
        {
            "ux_improvements": '["user experience improvements"]',
            "ui_enhancements": '["user interface enhancements"]',
            "accessibility_improvements": '["accessibility enhancements"]',
            "usability_optimizations": '["usability optimizations"]',
            "user_journey_improvements": '["user journey enhancements"]',
            "interaction_design_enhancements": '["interaction design improvements"]',
            "responsive_design_improvements": '["responsive design enhancements"]',
        },
    ),
    EnhancementCategory.SCALABILITY_IMPROVEMENT: _prompt(
        "You are a scalability expert. Improve the project's scalability characteristics.",
        {
            "scalability_enhancements": '["scalability improvements"]',
            "horizontal_scaling_strategies": '["horizontal scaling approaches"]',
            "vertical_scaling_optimizations": '["vertical scaling optimizations"]',
            "load_balancing_improvements": '["load balancing enhancements"]',
            "database_scaling_strategies": '["database scaling approaches"]',
            "caching_improvements": '["caching enhancements"]',
            "microservices_considerations": '["microservices recommendations"]',
        },
    ),
    EnhancementCategory.MAINTAINABILITY_ENHANCEMENT: _prompt(
        "You are a software maintainability expert. Improve the project's maintainability.",
        {
            "maintainability_improvements": '["maintainability enhancements"]',
            "code_organization_enhancements": '["code organization improvements"]',
            "documentation_improvements": '["documentation enhancements"]',
            "testing_strategy_improvements": '["testing strategy enhancements"]',
            "refactoring_recommendations": '["refactoring recommendations"]',
            "dependency_management_improvements": '["dependency management enhancements"]',
            "development_workflow_improvements": '["development workflow enhancements"]',
        },
    ),
    EnhancementCategory.COST_OPTIMIZATION: _prompt(
        "You are a cost optimization expert. Optimize the project's cost structure.",
        {
            "cost_optimizations": '["cost optimization strategies"]',
            "infrastructure_cost_savings": '["infrastructure cost reductions"]',
            "development_cost_optimizations": '["development cost optimizations"]',
            "operational_cost_improvements": '["operational cost improvements"]',
            "resource_utilization_improvements": '["resource utilization enhancements"]',
            "automation_opportunities": '["automation opportunities"]',
            "roi_improvements": '["ROI improvement strategies"]',
        },
    ),
}

GENERIC_PROMPT = _prompt(
    "You are a project enhancement expert. Improve the project in the specified category.",
    {
        "enhancements": '["specific enhancements"]',
        "implementation_approach": '"how to implement these enhancements"',
        "expected_benefits": '["expected benefits"]',
        "potential_risks": '["potential risks"]',
        "success_metrics": '["success metrics"]',
    },
)

PLAN_PROMPT = f"""You are an expert project enhancement strategist. Create a comprehensive enhancement plan.

Use these categories where they fit: {", ".join(category.value for category in EnhancementCategory)}.

Respond with JSON:
{{
  "enhancement_priorities": [
    {{
      "category": "enhancement category",
      "priority": "critical|high|medium|low",
      "impact": "high|medium|low",
      "effort": "high|medium|low",
      "enhancements": ["specific enhancements"]
    }}
  ],
  "implementation_sequence": ["ordered enhancement categories"],
  "resource_requirements": {{
    "additional_expertise": ["additional expertise needed"],
    "time_impact": "estimated additional time needed",
    "complexity_increase": "low|medium|high"
  }},
  "risk_mitigation": ["risks and mitigation strategies"],
  "success_metrics": ["metrics to measure enhancement success"]
}}"""

INTEGRATION_PROMPT = """You are a project integration expert. Integrate all enhancements into a comprehensive enhanced project.

Respond with the same JSON structure as the original project, enhanced with all improvements."""

SCORE_PROMPT = """You are a project improvement assessor. Compare the original and enhanced projects and calculate an improvement score.

Respond with JSON:
{
  "improvement_score": 0-100,
  "improvement_areas": ["areas that were improved"],
  "quantitative_improvements": ["measurable improvements"],
  "qualitative_improvements": ["qualitative improvements"],
  "overall_assessment": "significant|moderate|minor|no improvement"
}"""


def _project_title(project: Dict[str, Any]) -> str:
    return project.get("title") or "software project"


CategoryHandler = Callable[[Dict[str, Any], EnhancementCategory, List[Any]], Awaitable[Dict[str, Any]]]


class EnhancementAgent:
    """Plans, applies and integrates improvements for a plan that failed validation."""

    enhancement_strategies = list(EnhancementCategory)

    def __init__(self, web_search: Optional[WebSearchAgent] = None):
        self.web_search = web_search or WebSearchAgent()
        self._handlers: Dict[EnhancementCategory, CategoryHandler] = {
            EnhancementCategory.TECHNICAL_OPTIMIZATION: self._enhance_technical_optimization,
            EnhancementCategory.SECURITY_STRENGTHENING: self._enhance_security_strengthening,
        }

    async def enhance_project(
        self,
        project: Dict[str, Any],
        validation_suggestions: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Improve ``project`` following the validation suggestions.

        Returns:
            Dict with ``enhancement_plan``, ``enhancements``, ``enhanced_project``
            and the model's self-assessed ``improvement_score`` (0-100)
        """
        logger.info("Enhancement agent: starting project enhancement")

        plan = await self.create_enhancement_plan(project, validation_suggestions)
        enhancements = await self.apply_enhancements(project, plan)
        enhanced_project = await self.generate_enhanced_project(project, enhancements)
        improvement_score = await self.calculate_improvement_score(project, enhanced_project)

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "validation_suggestions": validation_suggestions,
            "enhancement_plan": plan,
            "enhancements": enhancements,
            "enhanced_project": enhanced_project,
            "improvement_score": improvement_score,
        }

    async def create_enhancement_plan(
        self,
        project: Dict[str, Any],
        validation_suggestions: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        logger.info("Creating enhancement plan")
        return await call_llm(
            PLAN_PROMPT,
            f"Project to Enhance:\n{to_json(project)}\n\n"
            f"Validation Suggestions:\n{to_json(validation_suggestions)}\n\n"
            "Create a strategic enhancement plan that addresses validation concerns and optimizes the project.",
        )

    async def apply_enhancements(self, project: Dict[str, Any], plan: Dict[str, Any]) -> Dict[str, Any]:
        """Apply every critical/high priority category from ``plan`` concurrently."""
        selected = [
            item for item in plan.get("enhancement_priorities") or []
            if isinstance(item, dict)
            and str(item.get("priority", "")).lower() in APPLIED_PRIORITIES
            and item.get("category")
        ]
        for item in selected:
            logger.info(f"Applying {item['category']} enhancements")

        outcomes = await asyncio.gather(*[self.apply_enhancement_category(project, item) for item in selected])
        return {str(item["category"]): outcome for item, outcome in zip(selected, outcomes)}

    async def apply_enhancement_category(self, project: Dict[str, Any], priority_item: Dict[str, Any]) -> Dict[str, Any]:
        enhancements = priority_item.get("enhancements") or []
        category = EnhancementCategory.parse(priority_item.get("category"))
        if category is None:
            return await self._generic_enhancement(project, str(priority_item.get("category")), enhancements)
        handler = self._handlers.get(category, self._enhance_with_prompt)
        return await handler(project, category, enhancements)

    async def _enhance_with_prompt(
        self,
        project: Dict[str, Any],
        category: EnhancementCategory,
        enhancements: List[Any],
        research: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        research_section = f"\n\nResearch:\n{to_json(research)}" if research is not None else ""
        return await call_llm(
            CATEGORY_PROMPTS[category],
            f"Project for Enhancement ({category.value}):\n{to_json(project)}\n\n"
            f"Specific Enhancements to Apply:\n{to_json(enhancements)}{research_section}\n\n"
            "Provide comprehensive improvements.",
        )

    async def _enhance_technical_optimization(
        self,
        project: Dict[str, Any],
        category: EnhancementCategory,
        enhancements: List[Any],
    ) -> Dict[str, Any]:
        year = datetime.now(timezone.utc).year
        title = _project_title(project)
        research = await self.web_search.search_multiple_queries([
            f"{title} performance optimization techniques {year}",
            f"{title} technical best practices",
            "software architecture optimization patterns",
        ])
        return await self._enhance_with_prompt(project, category, enhancements, research=research)

    async def _enhance_security_strengthening(
        self,
        project: Dict[str, Any],
        category: EnhancementCategory,
        enhancements: List[Any],
    ) -> Dict[str, Any]:
        year = datetime.now(timezone.utc).year
        research = await self.web_search.search_multiple_queries([
            f"software security best practices {year}",
            "application security vulnerabilities prevention",
            "secure coding guidelines",
        ])
        return await self._enhance_with_prompt(project, category, enhancements, research=research)

    async def _generic_enhancement(self, project: Dict[str, Any], category: str, enhancements: List[Any]) -> Dict[str, Any]:
        return await call_llm(
            GENERIC_PROMPT,
            f"Project for Enhancement:\n{to_json(project)}\n\n"
            f"Enhancement Category: {category}\n"
            f"Specific Enhancements: {to_json(enhancements)}\n\n"
            "Provide comprehensive improvements for this category.",
        )

    async def generate_enhanced_project(self, original_project: Dict[str, Any], enhancements: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("Generating enhanced project with all improvements")
        return await call_llm(
            INTEGRATION_PROMPT,
            f"Original Project:\n{to_json(original_project)}\n\n"
            f"Applied Enhancements:\n{to_json(enhancements)}\n\n"
            "Integrate all enhancements into a cohesive, improved project plan.",
        )

    async def calculate_improvement_score(self, original_project: Dict[str, Any], enhanced_project: Dict[str, Any]) -> int:
        comparison = await call_llm(
            SCORE_PROMPT,
            f"Original Project:\n{to_json(original_project)}\n\n"
            f"Enhanced Project:\n{to_json(enhanced_project)}\n\n"
            "Calculate the improvement score and assess the enhancements.",
        )
        try:
            score = float(comparison.get("improvement_score") or 0)
        except (TypeError, ValueError):
            return 0
        return round(max(0.0, min(100.0, score)))
