"""引用（来源）提取与合并。

OpenAI 兼容服务返回 annotations 的位置并不统一，提取时对每个条目
同时接受嵌套（url_citation / urlCitation）与扁平两种写法。
"""

from typing import Any, Dict, Iterable, List

from .models import Citation


def extract_citations(annotations: Any) -> List[Citation]:
    """把原始 annotations 列表转换为 Citation 列表，丢弃没有 url 的条目。"""

    if not isinstance(annotations, list):
        return []
    citations: List[Citation] = []
    for ann in annotations:
        if not isinstance(ann, dict):
            continue
        nested = ann.get("url_citation") or ann.get("urlCitation")
        source: Dict[str, Any] = nested if isinstance(nested, dict) else ann
        url = source.get("url")
        if not isinstance(url, str):
            url = ann.get("url")
        if not isinstance(url, str) or not url:
            continue
        title = source.get("title")
        content = source.get("content")
        citations.append(
            Citation(
                url=url,
                title=title if isinstance(title, str) else None,
                content=content if isinstance(content, str) else None,
            )
        )
    return citations


def merge_citations(existing: Iterable[Citation], incoming: Iterable[Citation]) -> List[Citation]:
    """按 url 合并引用。

    - 已有 url 保持原位置；新 url 按到达顺序追加。
    - 已填充的 title/content 不会被覆盖，只有空字段才采用新值。

    纯函数，且 ``merge(merge(s, l), l) == merge(s, l)``。
    """

    merged: Dict[str, Citation] = {c.url: c for c in existing}
    for citation in incoming:
        current = merged.get(citation.url)
        if current is None:
            merged[citation.url] = citation
            continue
        merged[citation.url] = Citation(
            url=citation.url,
            title=current.title or citation.title,
            content=current.content or citation.content,
        )
    return list(merged.values())
