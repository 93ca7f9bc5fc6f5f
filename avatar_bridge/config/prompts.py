"""
System prompts for the voice lesson.

The realtime model speaks as Марія, a virtual tutor. The prompt is sent once
per session inside the ``session.update`` configuration message.
"""

from typing import Optional

DEFAULT_SYSTEM_PROMPT = (
    "Ти Марія, віртуальна викладачка. Говори українською, дружньо та коротко."
)


def build_realtime_voice_prompt(
    user_name: Optional[str] = None, lesson_title: Optional[str] = None
) -> str:
    """
    Build the voice-mode system prompt for a lesson.

    Args:
        user_name: Name Марія should use to address the learner by
        lesson_title: Topic of the lesson

    Returns:
        The prompt text; the default prompt when neither argument is given
    """
    if not user_name and not lesson_title:
        return DEFAULT_SYSTEM_PROMPT

    lines = [
        "Ти Марія, віртуальна викладачка.",
        "Мова: українська. Тон: професійно-доброзичливий.",
    ]
    if user_name:
        lines.append(f"Звертайся до користувача на ім'я: {user_name}.")
    if lesson_title:
        lines.append(f"Тема уроку: {lesson_title}.")
    lines.extend(
        [
            "Правила:",
            "- Говори коротко: 2-4 речення за раз.",
            "- Кожну відповідь заверши одним чітким запитанням.",
            "- Не вигадуй точні відсотки чи цифри.",
            '- Коли урок завершено, попрощайся фразою "Дякую! До побачення!"',
        ]
    )
    return "\n".join(lines)
