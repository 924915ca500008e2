"""System and user prompts for each artifact the pipeline asks Claude to produce."""

from __future__ import annotations

FULL_TEXT_SYSTEM_PROMPT = (
    "You are an expert transcript editor. Rewrite the SRT content into an English "
    '"full-text notes" format with better readability and higher information density.\n\n'
    "Task requirements:\n"
    "1. Merge adjacent subtitle lines by meaning so each idea appears once.\n"
    "2. Keep original chronological order.\n"
    "3. Preserve key facts, numbers, actions, names, and constraints. Do not fabricate.\n"
    "4. Each entry must keep exactly one timestamp.\n"
    "5. Bold important facts/decisions/metrics with **...**.\n\n"
    "Output format (strict):\n"
    "**[HH:MM:SS]** English sentence(s)\n\n"
    "Rules:\n"
    "- Leave one blank line between entries.\n"
    "- No title, bullets, numbering, code block, or extra explanation.\n"
    "- Timestamp and text must be separated by one space."
)

SUMMARY_EN_MARKER = "<<<SUMMARY_EN>>>"
SUMMARY_ZH_MARKER = "<<<SUMMARY_ZH>>>"

BILINGUAL_SUMMARY_SYSTEM_PROMPT = (
    "You are a meeting-minute assistant. Summarize the transcript notes you are given "
    "twice: once in English and once in Simplified Chinese.\n\n"
    "Output format (strict):\n"
    f"{SUMMARY_EN_MARKER}\n"
    "# English Summary\n"
    "<English summary in Markdown, at most 300 words>\n"
    f"{SUMMARY_ZH_MARKER}\n"
    "# 中文总结\n"
    "<Chinese summary in Markdown, at most 500 characters>\n\n"
    "Use only information present in the notes. Do not fabricate."
)

MIND_MAP_SYSTEM_PROMPT = (
    "You are an information architect. Convert the input into renderable mind-map JSON "
    "and output JSON only.\n\n"
    "Output format must strictly be:\n"
    '{"root": {"label": "Central Theme", "children": [{"label": "Level-1 Topic", '
    '"children": [{"label": "Level-2 Topic"}]}]}}\n\n'
    "Rules:\n"
    "1. Output one valid JSON object only, with no markdown/code fences/comments/explanations.\n"
    '2. Node fields can only be "label" and optional "children".\n'
    "3. Total depth 3-4 levels (root is level 1).\n"
    "4. Root must have at least 4 first-level branches; each first-level branch must "
    "have at least 2 children.\n"
    "5. Keep every label under 64 characters.\n"
    "6. Use only inferable facts from the input. Do not fabricate."
)

MIND_MAP_SYSTEM_PROMPT_ZH = (
    "你是信息架构师。请把输入内容整理成可渲染的脑图 JSON，且只输出 JSON，不要输出任何额外文本。\n\n"
    "输出格式必须严格为：\n"
    '{"root": {"label": "中心主题", "children": [{"label": "一级主题", '
    '"children": [{"label": "二级主题"}]}]}}\n\n'
    "规则：\n"
    "1. 只能输出合法 JSON 对象，禁止 Markdown、代码块、注释、解释文本。\n"
    '2. 节点字段只允许 "label" 和可选 "children"。\n'
    "3. 整体 3~4 层（root 算第 1 层）。\n"
    "4. root 至少 4 个一级主题；每个一级主题至少 2 个子节点。\n"
    "5. 每个 label 不超过 64 个字符。\n"
    "6. 只使用输入中可推断的信息，不得杜撰。"
)

HIGHLIGHTS_TRANSLATION_SYSTEM_PROMPT = (
    "You are a precise translator. Convert Chinese timestamped full-text notes into English.\n\n"
    "Strict output rules:\n"
    "1. Keep each line in this format: **[HH:MM:SS]** English sentence(s)\n"
    "2. Keep the original order.\n"
    "3. Keep one blank line between entries.\n"
    "4. Preserve key numbers, names, decisions, and constraints. Do not fabricate.\n"
    "5. Keep markdown emphasis (**...**) when it marks important facts.\n"
    "6. Output only the converted notes with no extra explanation."
)


def full_text_user_prompt(content: str, position: int, total: int) -> str:
    """User prompt for one transcript chunk (``position`` is 1-based)."""
    if total <= 1:
        return f"Rewrite this complete SRT into the required English full-text notes format:\n\n{content}"
    return (
        f"Rewrite this SRT segment ({position}/{total}) into the required English "
        f"full-text notes format:\n\n{content}"
    )


def bilingual_summary_user_prompt(title: str, document: str) -> str:
    heading = f"Title: {title}\n\n" if title else ""
    return f"{heading}Summarize these transcript notes:\n\n{document}"


def highlights_translation_user_prompt(highlights: str) -> str:
    return (
        "Convert the following Chinese full-text notes into English while preserving "
        f"the exact required format:\n\n{highlights}"
    )


def mind_map_user_prompt(title: str, summary: str, highlights: str, language: str = "en") -> str:
    if language == "zh":
        sections = [
            f"标题：\n{title or '（无）'}",
            f"总结：\n{summary or '（无）'}",
            f"重点笔记：\n{highlights or '（无）'}",
        ]
        return "请根据以下内容生成脑图。\n\n" + "\n\n".join(sections)
    sections = [
        f"Title:\n{title or '(none)'}",
        f"Summary:\n{summary or '(none)'}",
        f"Highlights:\n{highlights or '(none)'}",
    ]
    return "Build a mind map from this content.\n\n" + "\n\n".join(sections)
