"""AI 回應的簡易標記編譯

支援的標記：
- [LINK:名稱|URL]      -> URI 按鈕
- [BUTTON:名稱|送出內容] -> 訊息按鈕
- [RED:文字] [BLUE:文字] [GREEN:文字] [ORANGE:文字] [BOLD:文字] -> 本文樣式

只有 LINK / BUTTON 會讓回覆變成 Flex 卡片；沒有這兩種標記時原文照回。
格式不完整的標記（未關閉、欄位數不對、含巢狀括號、名稱空白、
URL 不是 http(s)://、tel:、line:// 開頭）不會被解析，當作一般文字。
"""

import re

from .bot.message import ReplyAction, RichReply, TextSegment

PLACEHOLDER_BODY = "詳しくは下のボタンからご確認ください。"

# 至少要有一個非空白字元
_LABEL = r"[^\[\]|]*[^\[\]|\s][^\[\]|]*"
# URI 按鈕只接受 LINE 能開啟的 scheme
_URI = r"\s*(?:https?://|tel:|line://)[^\[\]|\s]+\s*"
_TOKEN_PATTERN = re.compile(
    rf"\[LINK:(?P<link_label>{_LABEL})\|(?P<link_url>{_URI})\]"
    rf"|\[BUTTON:(?P<button_label>{_LABEL})\|(?P<button_value>{_LABEL})\]"
    r"|\[(?P<style>RED|BLUE|GREEN|ORANGE|BOLD):(?P<styled>[^\[\]]+)\]"
)


def tokenize(text: str) -> list[tuple[str, str, str]]:
    """切分為 (kind, a, b) 片段

    kind: "text"（a=文字）、"link"（a=名稱, b=URL）、
    "button"（a=名稱, b=送出內容）、"style"（a=文字, b=樣式）
    """
    tokens: list[tuple[str, str, str]] = []
    position = 0
    for match in _TOKEN_PATTERN.finditer(text):
        if match.start() > position:
            tokens.append(("text", text[position:match.start()], ""))
        if match.group("link_label") is not None:
            tokens.append(("link", match.group("link_label").strip(), match.group("link_url").strip()))
        elif match.group("button_label") is not None:
            tokens.append(("button", match.group("button_label").strip(), match.group("button_value").strip()))
        else:
            tokens.append(("style", match.group("styled"), match.group("style")))
        position = match.end()
    if position < len(text):
        tokens.append(("text", text[position:], ""))
    return tokens


def _clean_segments(segments: list[TextSegment]) -> list[TextSegment]:
    """合併相鄰純文字、去除頭尾空白與多餘空行"""
    merged: list[TextSegment] = []
    for segment in segments:
        if merged and segment.style is None and merged[-1].style is None:
            merged[-1] = TextSegment(merged[-1].text + segment.text)
        else:
            merged.append(segment)

    for segment in merged:
        if segment.style is None:
            segment.text = re.sub(r"\n{3,}", "\n\n", segment.text)
            segment.text = re.sub(r"[ \t]+\n", "\n", segment.text)

    if merged:
        merged[0].text = merged[0].text.lstrip()
        merged[-1].text = merged[-1].text.rstrip()
    return [segment for segment in merged if segment.text]


def compile_reply(text: str) -> RichReply:
    """編譯 AI 回應

    Returns:
        沒有 LINK / BUTTON 標記時為 plain RichReply（原文不變）；
        否則為 structured RichReply，動作依出現順序排列，連結在前、按鈕在後。
    """
    if not text:
        return RichReply.plain(text or "")

    tokens = tokenize(text)
    links = [ReplyAction("uri", a, b) for kind, a, b in tokens if kind == "link"]
    buttons = [ReplyAction("message", a, b) for kind, a, b in tokens if kind == "button"]
    if not links and not buttons:
        return RichReply.plain(text)

    segments = _clean_segments([
        TextSegment(a, b if kind == "style" else None)
        for kind, a, b in tokens
        if kind in ("text", "style")
    ])
    if not segments:
        segments = [TextSegment(PLACEHOLDER_BODY)]

    body = "".join(segment.text for segment in segments)
    return RichReply(
        kind="structured",
        alt_text=body,
        body=body,
        segments=segments,
        actions=links + buttons,
    )
