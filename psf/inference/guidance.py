"""
Design guidance selection

Each rule is checked independently, so several items can be emitted for one
probe. Items are stamped with the probe's level.
"""

from typing import List, Optional

from .types import DimensionScores, GuidanceItem, ModifierScores, SystemProfile

SAFETY_THRESHOLD = 0.7
OBSERVABILITY_THRESHOLD = 0.7

CATALOG = {
    'l1-2-interface-baseline': (
        'interface',
        'Keep surfaces simple and deterministic',
        'Expose stable, rule-like behavior with clear boundaries; prioritize speed and low '
        'cognitive load over rich explanations.',
    ),
    'l3-expert-controls': (
        'interface',
        'Gate advanced behaviors behind expertise-sensitive controls',
        'Use mode switches or expert panels to concentrate more unpredictable behaviors where '
        'expert users can configure and monitor them.',
    ),
    'l4-scaffolds': (
        'interface',
        'Add scaffolds and safe defaults',
        'Provide guardrails such as default safe actions, checklists, and recovery options when '
        'Level 4 behavior is unavoidable.',
    ),
    'l5-advisory-surface': (
        'interface',
        'Treat the system as advisory only',
        'Present outputs as suggestions that require human review; avoid fully automated actions '
        'when behavior is effectively open-ended.',
    ),
    'safety-high-stakes': (
        'trust',
        'Strengthen safety posture for high-stakes use',
        'Introduce confirmations, escalation paths, and clear responsibility handoffs when the '
        'domain is safety-critical or S is below the desired threshold.',
    ),
    'observability-boost': (
        'explanation',
        'Increase observability of reasoning and limits',
        'Surface uncertainty cues, brief rationales, and "why this?" overlays so users can see how '
        'outputs were produced and when not to rely on them.',
    ),
    'novice-transition': (
        'transition',
        'Provide novice-friendly pathways into higher levels',
        'Offer guided tours, examples, and gradually unlocked capabilities so novice users can '
        'transition into Level 3+ behavior without being overwhelmed.',
    ),
}

LEVEL_ITEMS = {
    1: 'l1-2-interface-baseline',
    2: 'l1-2-interface-baseline',
    3: 'l3-expert-controls',
    4: 'l4-scaffolds',
    5: 'l5-advisory-surface',
}


def guidance_item(item_id: str, level: int) -> GuidanceItem:
    category, title, summary = CATALOG[item_id]
    return GuidanceItem(id=item_id, level=level, category=category, title=title, summary=summary)


def compute_guidance(level: int, dims: DimensionScores, modifiers: ModifierScores,
                     profile: Optional[SystemProfile] = None) -> List[GuidanceItem]:
    """Select guidance items for a classified probe.

    `dims` is accepted for parity with the rest of the pipeline; none of the
    current rules reads it.
    """
    stakes = profile.stakes if profile else 'medium'
    expertise = profile.expertise if profile else 'intermediate'

    selected = []
    if level in LEVEL_ITEMS:
        selected.append(LEVEL_ITEMS[level])
    if stakes == 'high' or modifiers.S < SAFETY_THRESHOLD:
        selected.append('safety-high-stakes')
    if modifiers.O < OBSERVABILITY_THRESHOLD:
        selected.append('observability-boost')
    if expertise == 'novice' and level >= 3:
        selected.append('novice-transition')

    return [guidance_item(item_id, level) for item_id in selected]
