"""
Downloadable diagnosis result: score banding and HTML rendering.
"""
from datetime import datetime

from flask import render_template

RECOMMENDATIONS = [
    (80, [
        '積極的な資産運用が可能な状態です',
        '分散投資でリスクを管理しながら高いリターンを狙えます',
        '専門家との相談で更なる最適化が可能です',
    ]),
    (60, [
        'バランスの取れた資産運用をお勧めします',
        'リスクとリターンのバランスを重視した投資戦略が適しています',
        '定期的な見直しで着実な資産形成を目指しましょう',
    ]),
    (40, [
        '堅実な資産運用から始めることをお勧めします',
        'まずは少額から始めて、徐々に投資額を増やしていきましょう',
        '基礎知識の習得と並行して実践することが大切です',
    ]),
    (0, [
        '資産運用の基礎から学ぶことをお勧めします',
        'リスクの低い商品から始めて、経験を積みましょう',
        '専門家のアドバイスを受けながら計画を立てることが重要です',
    ]),
]


def parse_score(value):
    """Score as an int; anything unparsable counts as 0."""
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def get_recommendations(score):
    for threshold, items in RECOMMENDATIONS:
        if score >= threshold:
            return items
    return RECOMMENDATIONS[-1][1]


def render_result_html(diagnosis_data, generated_at=None):
    """Render the result page. Answers are autoescaped by Jinja."""
    data = diagnosis_data if isinstance(diagnosis_data, dict) else {}
    score = parse_score(data.get('score'))
    answers = data.get('answers')
    if not isinstance(answers, dict):
        answers = {}
    generated_at = generated_at or datetime.utcnow()
    return render_template(
        'diagnosis/result.html',
        score=score,
        answers=answers,
        recommendations=get_recommendations(score),
        generated_at=generated_at.strftime('%Y-%m-%d %H:%M UTC'),
    )
