"""
Natural-language coaching feedback for learner responses.

Every call goes to the LLM at most once. If the model is not configured or the
call fails, a fixed per-component message is returned instead, so the
conversation never stalls on the completion service.
"""
import json
import logging
import re
from typing import List, Optional, Sequence

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from backend.app.core.errors import FeedbackGenerationError
from backend.app.core.prompts import PromptLoader, prompts
from backend.app.core.rate_limiter import TokenBucket, llm_limiter
from backend.app.models.srl import ChatMessage, SRLComponent, SRLFeedback, SRLPrompt
from backend.app.services.llm import get_llm

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK = "Thank you for sharing your thoughts! This reflection on your learning process is valuable."

_BULLET = re.compile(r"^\s*(?:[•\-\*]|\d+[.)])\s*")
_SECTION = re.compile(r"^\s*(suggestions?|next steps?)\s*:\s*(.*)$", re.IGNORECASE)


def parse_feedback(text: str):
    """
    Splits model output into (feedback, suggestions, next_steps).

    JSON output with those keys is used as-is. Otherwise the lines before a
    "Suggestions:" or "Next steps:" header form the feedback, and bullet lines
    under each header go to that list.
    """
    text = (text or "").strip()
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None

    if isinstance(parsed, dict):
        return (
            parsed.get("feedback") or DEFAULT_FEEDBACK,
            list(parsed.get("suggestions") or []),
            list(parsed.get("nextSteps") or parsed.get("next_steps") or []),
        )

    feedback_lines: List[str] = []
    sections = {"suggestions": [], "next": []}
    current = None
    for line in text.splitlines():
        if not line.strip():
            continue
        header = _SECTION.match(line)
        if header:
            current = "next" if header.group(1).lower().startswith("next") else "suggestions"
            if header.group(2).strip():
                sections[current].append(header.group(2).strip())
            continue
        if current is None:
            feedback_lines.append(line.strip())
        else:
            item = _BULLET.sub("", line).strip()
            if item:
                sections[current].append(item)

    feedback = " ".join(feedback_lines) or DEFAULT_FEEDBACK
    return feedback, sections["suggestions"], sections["next"]


class FeedbackService:
    def __init__(self, llm=None, templates: PromptLoader = prompts, limiter: Optional[TokenBucket] = llm_limiter):
        self._llm = llm
        self.templates = templates
        self.limiter = limiter

    @property
    def llm(self):
        if self._llm is None:
            self._llm = get_llm()
        return self._llm

    async def _complete(self, messages) -> str:
        # An unconfigured model raises here, before a token is taken.
        llm = self.llm
        if self.limiter is not None:
            await self.limiter.wait_for_token()
        try:
            result = await llm.ainvoke(messages)
        except FeedbackGenerationError:
            raise
        except Exception as e:
            raise FeedbackGenerationError(str(e)) from e
        content = getattr(result, "content", result)
        if not isinstance(content, str) or not content.strip():
            raise FeedbackGenerationError("Model returned an empty completion")
        return content

    def _fallback(self, key: str, component: SRLComponent) -> str:
        try:
            return self.templates.raw(key)[component.value]
        except (KeyError, TypeError):
            return DEFAULT_FEEDBACK

    async def generate(self, prompt: SRLPrompt, response: str,
                       history: Optional[Sequence[ChatMessage]] = None) -> SRLFeedback:
        """
        Coaching feedback for one learner response to `prompt`.
        """
        try:
            system = self.templates.get(
                "feedback_system",
                week=prompt.week,
                component=prompt.component.value,
                component_description=self.templates.raw("component_descriptions")[prompt.component.value],
            )
            user = self.templates.get(
                "feedback_user",
                response=response,
                question=prompt.question,
                component=prompt.component.value,
                week=prompt.week,
            )
            messages = [SystemMessage(content=system)]
            for turn in history or []:
                if not turn.content:
                    continue
                if turn.sender == "bot":
                    messages.append(AIMessage(content=turn.content))
                else:
                    messages.append(HumanMessage(content=turn.content))
            messages.append(HumanMessage(content=user))

            text = await self._complete(messages)
        except (FeedbackGenerationError, KeyError) as e:
            logger.warning("Feedback generation failed for %s, using fallback: %s", prompt.id, e)
            return SRLFeedback(
                promptId=prompt.id,
                response=response,
                feedback=self._fallback("fallback_feedback", prompt.component),
            )

        feedback, suggestions, next_steps = parse_feedback(text)
        return SRLFeedback(
            promptId=prompt.id,
            response=response,
            feedback=feedback,
            suggestions=suggestions,
            nextSteps=next_steps,
        )

    async def follow_up(self, component: SRLComponent, week: int, previous_response: Optional[str] = None) -> str:
        try:
            system = self.templates.get("follow_up_system", component=component.value)
            if previous_response:
                user = self.templates.get("follow_up_with_response", previous_response=previous_response)
            else:
                user = self.templates.get("follow_up_without_response", week=week, component=component.value)
            return (await self._complete([SystemMessage(content=system), HumanMessage(content=user)])).strip()
        except (FeedbackGenerationError, KeyError) as e:
            logger.warning("Follow-up generation failed, using fallback: %s", e)
            return self._fallback("fallback_follow_up", component)

    async def completion_message(self, history: Sequence[ChatMessage]) -> str:
        # Last three learner messages are enough context for closing tips
        recent = [m.content for m in history if m.sender == "user" and m.content][-3:]
        try:
            system = self.templates.raw("completion_system")
            user = self.templates.get("completion_user", conversation="\n\n".join(recent))
            return (await self._complete([SystemMessage(content=system), HumanMessage(content=user)])).strip()
        except (FeedbackGenerationError, KeyError) as e:
            logger.warning("Completion message generation failed, using fallback: %s", e)
            try:
                return self.templates.raw("fallback_completion").strip()
            except KeyError:
                return "Great work completing your session!"
