"""Generative AI advice for Parent Copilot.

Builds prompts from child data and sends them to a Gemini model. Every call
returns usable content: when the model errors or replies with text that is
not the expected JSON, fixed fallback advice is returned instead.
"""

import json
import re
from datetime import date
from typing import Any, Dict, List, Optional

import google.generativeai as genai

from config import settings
from logger_config import setup_logger
from time_utils import today

logger = setup_logger(__name__, 'ai.log')

_CODE_FENCE_RE = re.compile(r'^```(?:json)?\s*(.*?)\s*```$', re.DOTALL | re.IGNORECASE)

# Returned when the model replied but the reply was not valid JSON.
# The raw reply replaces the first key where it is readable on its own.
TIP_UNPARSED_FALLBACK = {
    "tip": "",
    "milestone": "Continue monitoring developmental progress",
    "safety": "Ensure childproofing is up to date",
    "nutrition": "Maintain balanced meals with fruits and vegetables",
}

# Returned when the model call itself failed.
TIP_FALLBACK = {
    "tip": "Continue providing love, care, and attention to your child's development.",
    "milestone": "Monitor age-appropriate developmental milestones",
    "safety": "Ensure a safe environment for exploration and play",
    "nutrition": "Provide balanced nutrition with age-appropriate portions",
}

CARE_PLAN_UNPARSED_FALLBACK = {
    "dailyRoutine": ["Regular meal times", "Adequate sleep", "Play time"],
    "healthMonitoring": ["Track growth", "Monitor development", "Regular checkups"],
    "activities": ["Age-appropriate play", "Reading time", "Physical activity"],
    "safety": ["Childproof environment", "Supervision", "Emergency preparedness"],
    "nutrition": ["Balanced meals", "Adequate hydration", "Limit processed foods"],
}

CARE_PLAN_FALLBACK = {
    "dailyRoutine": ["Maintain consistent schedule", "Ensure adequate rest"],
    "healthMonitoring": ["Regular health checkups", "Monitor growth"],
    "activities": ["Encourage play and exploration", "Reading and learning"],
    "safety": ["Maintain safe environment", "Supervise activities"],
    "nutrition": ["Provide balanced nutrition", "Encourage healthy eating"],
}

HEALTH_INSIGHT_UNPARSED_FALLBACK = {
    "trends": "Continue monitoring health metrics",
    "concerns": "No immediate concerns identified",
    "recommendations": "Maintain current care routine",
    "milestones": "Watch for age-appropriate developmental progress",
}

HEALTH_INSIGHT_FALLBACK = {
    "trends": "Health monitoring is on track",
    "concerns": "Continue regular health monitoring",
    "recommendations": "Maintain consistent care routine",
    "milestones": "Monitor developmental progress",
}

CHAT_FALLBACK = (
    "I'm not able to answer right now. For anything urgent or worrying about "
    "your child's health, please contact your pediatrician."
)

DAILY_SUMMARY_FALLBACK = (
    "Today's priorities: keep to your child's usual routine, check any active "
    "reminders, and make time for play and rest. You're doing a great job."
)


class AIServiceError(Exception):
    """Raised when the model cannot be reached or returns no text."""


def parse_json_reply(text: str) -> Any:
    """Parse a JSON reply, tolerating a surrounding Markdown code fence.

    Raises:
        ValueError: If the text is not JSON
    """
    cleaned = text.strip()
    match = _CODE_FENCE_RE.match(cleaned)
    if match:
        cleaned = match.group(1)
    return json.loads(cleaned)


def calculate_age(date_of_birth, reference: Optional[date] = None) -> int:
    """Age in whole years on ``reference`` (default: today)."""
    reference = reference or today()
    if not isinstance(date_of_birth, date):
        date_of_birth = date.fromisoformat(str(date_of_birth)[:10])

    age = reference.year - date_of_birth.year
    if (reference.month, reference.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def _describe_age(child: dict) -> str:
    try:
        return str(calculate_age(child.get('dateOfBirth')))
    except (TypeError, ValueError):
        return "unknown"


class AIService:
    """Prompt builder and client for the external text-generation model.

    Args:
        model: Object with a ``generate_content(prompt, ...)`` method returning
            a response with ``.text``. Defaults to a Gemini GenerativeModel
            built on first use.
    """

    def __init__(self, model=None):
        self._model = model

    @property
    def model(self):
        if self._model is None:
            genai.configure(api_key=settings.GEMINI_API_KEY)
            self._model = genai.GenerativeModel(settings.GEMINI_MODEL)
            logger.info(f"Gemini model initialized: {settings.GEMINI_MODEL}")
        return self._model

    def generate_text(self, prompt: str) -> str:
        """Send one prompt and return the reply text.

        Raises:
            AIServiceError: On any model or transport failure
        """
        try:
            response = self.model.generate_content(
                prompt,
                request_options={"timeout": settings.AI_REQUEST_TIMEOUT},
            )
            text = response.text
        except Exception as e:
            raise AIServiceError(str(e)) from e

        if not text:
            raise AIServiceError("Model returned an empty reply")
        return text

    def _generate_structured(self, prompt: str, what: str,
                             unparsed_fallback: Dict[str, Any],
                             error_fallback: Dict[str, Any],
                             raw_key: Optional[str] = None) -> Dict[str, Any]:
        try:
            text = self.generate_text(prompt)
        except AIServiceError as e:
            logger.warning(f"Error generating {what}, using fallback: {str(e)}")
            return dict(error_fallback)

        try:
            parsed = parse_json_reply(text)
        except ValueError:
            parsed = None

        if not isinstance(parsed, dict):
            logger.warning(f"Unparsable {what} reply, using fallback")
            result = dict(unparsed_fallback)
            if raw_key:
                result[raw_key] = text.strip()
            return result

        # Fill in anything the model left out
        return {**error_fallback, **parsed}

    def generate_personalized_tip(self, child: dict, context: str = "") -> Dict[str, Any]:
        """Personalized tip: keys tip, milestone, safety, nutrition."""
        prompt = f"""
As an AI pediatric health assistant, provide personalized advice for a child based on the following information:

Child Information:
- Name: {child.get('name')}
- Age: {_describe_age(child)} years old
- Gender: {child.get('gender')}
- Medical History: {json.dumps(child.get('medicalHistory'))}
- Development Milestones: {json.dumps(child.get('developmentMilestones'))}

Context: {context or ''}

Please provide:
1. A personalized health tip (2-3 sentences)
2. A developmental milestone to watch for
3. A safety recommendation
4. A nutrition suggestion

Format your response as JSON with these keys: tip, milestone, safety, nutrition
"""
        return self._generate_structured(
            prompt, "personalized tip", TIP_UNPARSED_FALLBACK, TIP_FALLBACK, raw_key="tip"
        )

    def generate_care_plan(self, child: dict, specific_needs: str = "") -> Dict[str, Any]:
        """Care plan sections, each a list of short task strings."""
        prompt = f"""
Create a comprehensive care plan for a child with the following information:

Child Information:
- Name: {child.get('name')}
- Age: {_describe_age(child)} years old
- Medical History: {json.dumps(child.get('medicalHistory'))}
- Current Development: {json.dumps(child.get('developmentMilestones'))}

Specific Needs: {specific_needs or ''}

Please create a care plan that includes:
1. Daily routine recommendations
2. Health monitoring tasks
3. Developmental activities
4. Safety measures
5. Nutrition guidelines

Format as JSON with these sections, each a list of short strings: dailyRoutine, healthMonitoring, activities, safety, nutrition
"""
        plan = self._generate_structured(
            prompt, "care plan", CARE_PLAN_UNPARSED_FALLBACK, CARE_PLAN_FALLBACK
        )
        # Tasks are built from these two sections, so they must be lists of strings
        for key in ("dailyRoutine", "healthMonitoring"):
            value = plan.get(key)
            if isinstance(value, str):
                plan[key] = [value]
            elif not isinstance(value, list):
                plan[key] = list(CARE_PLAN_UNPARSED_FALLBACK[key])
            else:
                plan[key] = [str(item) for item in value]
        return plan

    def generate_health_insight(self, child: dict, health_records: List[dict]) -> Dict[str, Any]:
        """Health analysis: keys trends, concerns, recommendations, milestones."""
        prompt = f"""
Analyze the following health data for a child and provide insights:

Child: {child.get('name')}, Age: {_describe_age(child)} years
Health Records: {json.dumps(health_records)}

Provide insights on:
1. Health trends
2. Areas of concern
3. Recommendations
4. Upcoming milestones to watch

Format as JSON with: trends, concerns, recommendations, milestones
"""
        return self._generate_structured(
            prompt, "health insight", HEALTH_INSIGHT_UNPARSED_FALLBACK, HEALTH_INSIGHT_FALLBACK
        )

    def chat(self, message: str, child: Optional[dict] = None, context: Optional[str] = None) -> str:
        """Answer a parent's free-form question."""
        child_context = ""
        if child:
            child_context = f"""
Child Information:
- Name: {child.get('name')}
- Age: {_describe_age(child)} years old
- Gender: {child.get('gender')}
- Medical History: {json.dumps(child.get('medicalHistory'))}
"""

        prompt = f"""
You are an AI pediatric health assistant. A parent is asking for help with their child.
{child_context}
Parent's question: {message}

Context: {context or 'General parenting question'}

Please provide helpful, accurate, and supportive advice. Remember to:
1. Be encouraging and supportive
2. Provide practical advice
3. Suggest consulting healthcare professionals when appropriate
4. Keep responses concise but informative
"""
        try:
            return self.generate_text(prompt)
        except AIServiceError as e:
            logger.warning(f"Error in AI chat, using fallback: {str(e)}")
            return CHAT_FALLBACK

    def daily_summary(self, child: dict, health_records: List[dict],
                      reminders: List[dict], care_plans: List[dict]) -> str:
        """Short daily briefing built from the child's current records."""
        active_reminders = [r for r in reminders if r.get('isActive')]
        prompt = f"""
Generate a daily summary for a parent about their child's health and care needs.

Child: {child.get('name')}, Age: {_describe_age(child)} years

Recent Health Records: {json.dumps(health_records[-5:])}
Active Reminders: {json.dumps(active_reminders)}
Care Plans: {json.dumps(care_plans)}

Provide:
1. Today's priorities
2. Health reminders
3. Developmental focus areas
4. General encouragement

Keep it concise and actionable.
"""
        try:
            return self.generate_text(prompt)
        except AIServiceError as e:
            logger.warning(f"Error generating daily summary, using fallback: {str(e)}")
            return DAILY_SUMMARY_FALLBACK


_ai_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    """Shared AI service instance. Also used as a FastAPI dependency."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service
