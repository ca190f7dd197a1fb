from typing import Dict, List

from vidtutor.config import config

MAX_SUBTITLE_CHARS = config.MAX_SUBTITLE_CHARS

SYSTEM_PROMPT = "你是一位专业的教学内容设计师，擅长将视频内容转化为通俗易懂的图文教程。直接输出内容，不要输出思考过程。"

tutorial_template = """你是一位顶级教学内容设计师。根据以下 B 站视频的字幕内容，生成一篇**结构清晰、适合零基础小白**的图文教程。

## 视频信息
- 标题：{title}

## 字幕原文
{subtitles}

## 教程生成要求
1. **标题**：取一个吸引小白的标题
2. **前言**：一段话概括这个视频讲了什么，让小白知道学完能获得什么
3. **核心知识点**：提炼 3-7 个关键知识点，每个知识点包含：
   - 知识点标题
   - 通俗易懂的解释（用类比、举例）
   - 实操步骤（如果有的话）
4. **常见问题**：预判小白可能遇到的 2-3 个问题，给出解答
5. **总结**：一句话总结核心收获

## 格式要求
- 使用 Markdown 格式
- 用 emoji 让内容更生动
- 语言亲切，像朋友在教你
- 避免专业术语，如果必须用则附上解释
- 不要输出任何思考过程（<think>标签内容），直接输出教程内容"""


def build_tutorial_prompt(subtitle_text: str, title: str = "") -> str:
    """
    Build the tutorial prompt from subtitle text and the video title.

    Subtitle text is cut to MAX_SUBTITLE_CHARS to bound the upstream request.
    """
    return tutorial_template.format(
        title=title or "未知",
        subtitles=subtitle_text[:MAX_SUBTITLE_CHARS],
    )


def build_chat_messages(subtitle_text: str, title: str = "") -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_tutorial_prompt(subtitle_text, title)},
    ]
