"""
Async OpenAI chat client: answers studio questions, calling engine tools as needed
"""
import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from config import APIConfig, get_config

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """Ты — чат-бот студии танцев CosmoDance (cosmo.su) в Санкт-Петербурге.

Твоя роль:
- Отвечать на вопросы про расписание, направления, филиалы, абонементы и цены
- Использовать инструменты, чтобы давать актуальную информацию с сайта студии
- Предлагать новичкам подходящие группы

Правила:
- Для расписания вызывай get_schedule (с филиалом, если его назвали)
- Для цен и абонементов вызывай get_prices
- Если данные помечены как fallback, скажи, что это общая информация, и дай ссылку на сайт
- Если чего-то не знаешь точно, предложи оставить номер телефона или написать администратору

Пиши дружелюбно, по-русски, кратко и по делу."""


class StudioChatClient:
    """Chat Completions client that lets the model call the studio tools"""

    def __init__(self, api_config: Optional[APIConfig] = None):
        api_config = api_config or get_config().api
        if not api_config.openai_api_key:
            raise ValueError(
                "OPENAI_API_KEY is not configured; "
                "set it in backend/.env to enable the chat endpoint."
            )

        self.client = AsyncOpenAI(api_key=api_config.openai_api_key)
        self.model_name = api_config.openai_model
        self.temperature = api_config.temperature
        self.system_prompt = SYSTEM_PROMPT

    async def chat_with_tools(
        self,
        user_message: str,
        tools_schema: List[Dict[str, Any]],
        tool_registry: Any,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Any]:
        """
        Answer one user message, running tool calls until the model replies in text.

        Args:
            user_message: The user's message
            tools_schema: Flat list of function declarations (name/description/parameters)
            tool_registry: ToolRegistry instance to execute tools
            history: Optional prior user/assistant turns

        Returns:
            Dictionary with reply, sources, tool_calls and suggested_questions
        """
        tools = [{"type": "function", "function": fd} for fd in tools_schema]

        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt},
        ]
        for item in history or []:
            role = (item.get("role") or "").lower()
            content = item.get("content") or ""
            if content and role in ("user", "assistant"):
                messages.append({"role": role, "content": content})
        messages.append({"role": "user", "content": user_message})

        tool_calls: List[Dict[str, Any]] = []
        sources: List[str] = []
        final_reply = ""

        max_iterations = 3

        for _ in range(max_iterations):
            completion = await self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                tools=tools,
                tool_choice="auto",
                temperature=self.temperature,
            )
            message = completion.choices[0].message

            if getattr(message, "tool_calls", None):
                messages.append(
                    {
                        "role": "assistant",
                        "content": message.content or "",
                        "tool_calls": [
                            {
                                "id": tc.id,
                                "type": tc.type,
                                "function": {
                                    "name": tc.function.name,
                                    "arguments": tc.function.arguments,
                                },
                            }
                            for tc in message.tool_calls
                        ],
                    }
                )

                for tc in message.tool_calls:
                    name = tc.function.name
                    # OpenAI returns arguments as a JSON string
                    try:
                        args = json.loads(tc.function.arguments or "{}")
                    except json.JSONDecodeError:
                        logger.warning("Malformed arguments for tool %s: %r", name, tc.function.arguments)
                        args = {}

                    tool_calls.append({"name": name, "arguments": args})
                    result = await tool_registry.call_tool(name, args)
                    sources.append(self._source_label(result, name))

                    messages.append(
                        {
                            "role": "tool",
                            "tool_call_id": tc.id,
                            "content": json.dumps(result, ensure_ascii=False),
                        }
                    )
                # Let the model synthesize a final answer
                continue

            final_reply = message.content or ""
            break

        if not final_reply:
            final_reply = "Извините, я не смог сформировать ответ. Попробуйте переформулировать вопрос."

        return {
            "reply": final_reply,
            "sources": sources or None,
            "tool_calls": tool_calls or None,
            "suggested_questions": self._generate_suggested_questions(tool_calls),
        }

    @staticmethod
    def _source_label(result: Dict[str, Any], tool_name: str) -> str:
        meta = result.get("meta") if isinstance(result, dict) else None
        if meta:
            return f"{meta.get('source')} ({meta.get('origin')})"
        return f"Tool: {tool_name}"

    def _generate_suggested_questions(self, tool_calls: List[Dict[str, Any]]) -> List[str]:
        """Contextual follow-up suggestions"""
        names = {tc.get("name") for tc in tool_calls}
        suggestions: List[str] = []

        if "get_schedule" in names:
            suggestions.extend(["Сколько стоит абонемент?", "Есть ли пробное занятие?"])
        if "get_prices" in names:
            suggestions.extend(["Какие группы есть для новичков?", "Какие есть скидки?"])

        if not suggestions:
            suggestions = [
                "Расписание на Дыбенко",
                "Сколько стоит абонемент?",
                "Какие есть филиалы?",
            ]
        return suggestions[:3]
