"""
Roleplay scenario catalog.

Each scenario fixes the client role the model plays, the scoring category
its feedback is weighted by, and how many turns a session lasts. Opening
lines are looked up per locale with the fallback chain
exact locale -> English -> generic greeting.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

DEFAULT_MAX_TURNS = 8
DEFAULT_LOCALE = "en"
GENERIC_OPENING = "Hello, how can I help you?"


class ScenarioCategory(Enum):
    """Scoring emphasis applied to a scenario's feedback."""
    OBJECTION = "objection"
    CLOSING = "closing"
    DISCOVERY = "discovery"
    PRESENTATION = "presentation"
    NETWORKING = "networking"
    FOLLOW_UP = "follow_up"


class Difficulty(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class Scenario:
    """One practice situation."""
    id: str
    category: ScenarioCategory
    difficulty: Difficulty
    role: str
    max_turns: int = DEFAULT_MAX_TURNS


def _scenario(id, category, difficulty, role, max_turns=DEFAULT_MAX_TURNS) -> Scenario:
    return Scenario(
        id=id,
        category=ScenarioCategory(category),
        difficulty=Difficulty(difficulty),
        role=role,
        max_turns=max_turns,
    )


_CATALOG = [
    _scenario(
        "cold_call", "discovery", "beginner",
        "You are receiving an unexpected call from a salesperson. You are busy and slightly annoyed "
        "but professional. Give them 30 seconds to grab your attention.",
    ),
    _scenario(
        "objection_price", "objection", "intermediate",
        "You are interested in the product but find it too expensive. Push back on price firmly but "
        "remain open to negotiation if they provide good justification.",
    ),
    _scenario(
        "objection_timing", "objection", "beginner",
        'You like the product but say "now is not the right time." You have budget constraints this quarter.',
    ),
    _scenario(
        "objection_competitor", "objection", "intermediate",
        "You are already using a competitor's product. You need compelling reasons to switch.",
    ),
    _scenario(
        "objection_no_budget", "objection", "intermediate",
        "You genuinely have no budget allocated for this. You need help finding creative solutions.",
    ),
    _scenario(
        "objection_need_approval", "objection", "beginner",
        "You personally like the product but need your boss's approval. You are not the final decision maker.",
    ),
    _scenario(
        "objection_already_have", "objection", "intermediate",
        "You already have a similar solution in place. You are not actively looking to change.",
    ),
    _scenario(
        "objection_too_complex", "objection", "intermediate",
        "You worry the solution is too complex for your team to adopt. Implementation concerns are "
        "your main barrier.",
    ),
    _scenario(
        "objection_not_interested", "objection", "advanced",
        "You are not interested at all. Be polite but firm. Only reconsider if the salesperson finds "
        "a genuine pain point.",
    ),
    _scenario(
        "objection_send_info", "objection", "beginner",
        'You say "just send me some information" as a way to end the conversation politely. '
        "You probably won't read it.",
    ),
    _scenario(
        "needs_discovery", "discovery", "beginner",
        "You have business problems but aren't sure what solution you need. Be open to sharing "
        "challenges if asked the right questions.",
    ),
    _scenario(
        "needs_deep_dive", "discovery", "advanced",
        "You have a specific problem and want to go deep. Ask technical questions and challenge the "
        "salesperson's understanding.",
        max_turns=10,
    ),
    _scenario(
        "closing_assumptive", "closing", "intermediate",
        "You are 80% convinced. The salesperson needs to nudge you over the finish line without being pushy.",
    ),
    _scenario(
        "closing_urgency", "closing", "intermediate",
        "You are interested but procrastinating. You need a legitimate reason to act now.",
    ),
    _scenario(
        "closing_summary", "closing", "advanced",
        "You have had multiple meetings. You need a clear summary of value before making a final decision.",
        max_turns=10,
    ),
    _scenario(
        "closing_alternative", "closing", "intermediate",
        "You are torn between two options. Help the salesperson guide you to a choice.",
    ),
    _scenario(
        "presentation", "presentation", "intermediate",
        "You are in a meeting where the salesperson is presenting. Ask tough questions and challenge assumptions.",
        max_turns=10,
    ),
    _scenario(
        "presentation_demo", "presentation", "intermediate",
        "You are watching a product demo. Point out things you like and things that concern you.",
        max_turns=10,
    ),
    _scenario(
        "follow_up_call", "follow_up", "beginner",
        "You met the salesperson last week. You remember them but have been busy. You appreciate the follow-up.",
    ),
    _scenario(
        "follow_up_no_response", "follow_up", "intermediate",
        "The salesperson has emailed you twice with no response. You saw the emails but didn't prioritize them.",
    ),
    _scenario(
        "referral_ask", "networking", "beginner",
        "You are a satisfied customer. The salesperson is asking you for referrals. Be helpful but set boundaries.",
    ),
    _scenario(
        "referral_introduction", "networking", "beginner",
        "You were introduced to the salesperson by a mutual connection. Give them some benefit of the doubt.",
    ),
    _scenario(
        "upsell", "closing", "intermediate",
        "You are an existing customer. The salesperson wants to sell you an upgraded package. "
        "You are cautiously interested.",
    ),
    _scenario(
        "cross_sell", "presentation", "intermediate",
        "You are using one product and the salesperson wants to introduce a complementary one. "
        "Be open but budget-conscious.",
    ),
    _scenario(
        "negotiation_discount", "objection", "advanced",
        "You want a 30% discount. The standard is 10%. Negotiate firmly but fairly.",
        max_turns=10,
    ),
    _scenario(
        "negotiation_terms", "objection", "advanced",
        "You want better payment terms (net 60 instead of net 30). Make your case business-driven.",
        max_turns=10,
    ),
    _scenario(
        "gate_keeper", "networking", "intermediate",
        "You are an executive assistant or receptionist. Protect your boss's time but be professional.",
        max_turns=6,
    ),
    _scenario(
        "executive_pitch", "presentation", "advanced",
        "You are a C-level executive with 10 minutes. You care only about strategic impact and ROI.",
        max_turns=6,
    ),
    _scenario(
        "networking_event", "networking", "beginner",
        "You are at a business networking event. You are open to conversation but not a hard sell.",
        max_turns=6,
    ),
    _scenario(
        "linkedin_outreach", "networking", "beginner",
        "You received a LinkedIn message. You are skeptical of most LinkedIn sales messages but open "
        "to genuine connections.",
        max_turns=6,
    ),
]

SCENARIOS: Dict[str, Scenario] = {s.id: s for s in _CATALOG}

GENERIC_ROLE = (
    "You are a potential client meeting a salesperson for the first time. "
    "Be professional and react naturally to their pitch."
)

OPENING_LINES: Dict[str, Dict[str, str]] = {
    "en": {
        "cold_call": "Hello? Who is this?",
        "objection_price": "I like what I see, but honestly, the pricing is way beyond what we budgeted for this.",
        "objection_timing": (
            "This looks interesting, but we just finalized our budget for this quarter. "
            "Can we revisit this next year?"
        ),
        "objection_competitor": "We actually already use [Competitor] for this. It's working fine for us.",
        "objection_no_budget": "I appreciate the presentation, but we simply don't have budget for this right now.",
        "objection_need_approval": (
            "I personally think this could work, but I'd need to run this by my director first."
        ),
        "objection_already_have": (
            "We already have something similar in place. I'm not sure we need another solution."
        ),
        "objection_too_complex": (
            "This seems very powerful, but I'm worried it would take months to implement "
            "and my team would struggle with it."
        ),
        "objection_not_interested": "Thanks for reaching out, but I don't think this is something we need.",
        "objection_send_info": (
            "Why don't you just send me some materials and I'll take a look when I get a chance?"
        ),
        "needs_discovery": (
            "Hi, thanks for meeting with me. I'm not entirely sure what we need, "
            "but we've been having some challenges with our current process."
        ),
        "needs_deep_dive": "We have a very specific problem with our workflow. Let me explain what's happening...",
        "closing_assumptive": (
            "I've been thinking about your proposal. I'm mostly convinced, but I still have a few concerns."
        ),
        "closing_urgency": (
            "I do like the solution, but there's no real rush on our end. "
            "We can probably look at this next quarter."
        ),
        "closing_summary": (
            "We've had several discussions now. Before I make a final decision, "
            "can you walk me through the key points one more time?"
        ),
        "closing_alternative": "I'm stuck between your solution and another option. Help me think through this.",
        "presentation": "Please go ahead with your presentation. I have about 30 minutes.",
        "presentation_demo": "I'm ready for the demo. Show me how this would work for our specific use case.",
        "follow_up_call": "Oh hi, yes I remember you from last week. Sorry I've been swamped.",
        "follow_up_no_response": "Oh... yes, I think I saw your emails. Sorry, it's been a crazy few weeks.",
        "referral_ask": "Glad the product is working well for us! What can I help you with today?",
        "referral_introduction": "Hi, [mutual connection] mentioned I should talk to you. I have a few minutes.",
        "upsell": "We're happy with the current plan. What's this about an upgrade?",
        "cross_sell": "I didn't know you offered that as well. Tell me more.",
        "negotiation_discount": "The price needs to come down significantly. We're looking at at least 30% off.",
        "negotiation_terms": (
            "Net 30 is tough for us. Our finance team needs at least net 60 for purchases this size."
        ),
        "gate_keeper": "Good morning, [Company name]. How can I direct your call?",
        "executive_pitch": "You have 10 minutes. What's the strategic value for my organization?",
        "networking_event": "Hi there! What brings you to this event?",
        "linkedin_outreach": "[Viewing your LinkedIn message...] Hmm, interesting. Tell me more about what you do.",
    },
    "zh-TW": {
        "cold_call": "喂？請問哪位？",
        "objection_price": "我蠻喜歡這個產品的，但老實說，價格遠遠超出我們的預算。",
        "objection_timing": "看起來很有意思，不過我們這一季的預算剛定案，明年再談好嗎？",
        "objection_competitor": "我們其實已經在用 [競爭對手] 了，用得還不錯。",
        "objection_not_interested": "謝謝你的聯絡，不過我想我們目前不需要這個。",
        "objection_send_info": "不然你先寄一些資料給我，我有空再看看？",
        "needs_discovery": "你好，謝謝你過來。我也不太確定我們需要什麼，只是現在的流程一直有些問題。",
        "closing_urgency": "我是喜歡這個方案啦，但我們不急，大概下一季再看看。",
        "presentation": "請開始你的簡報，我大概有三十分鐘。",
        "follow_up_call": "喔，你好！我記得你，上週見過面。不好意思，最近真的太忙了。",
        "networking_event": "你好！今天怎麼會來參加這個活動？",
    },
    "ja": {
        "cold_call": "はい、もしもし。どちら様でしょうか？",
        "objection_price": "内容は良いと思うのですが、正直なところ、価格が予算を大きく超えています。",
        "objection_timing": "興味深いですね。ただ、今期の予算はもう確定してしまいました。来年また検討させていただけますか？",
        "objection_competitor": "実は、すでに [競合他社] のサービスを使っていまして、特に問題はないんです。",
        "objection_not_interested": "ご連絡ありがとうございます。ただ、今のところ必要ないかと思います。",
        "objection_send_info": "とりあえず資料を送っていただけますか？時間があるときに見ておきます。",
        "needs_discovery": "本日はありがとうございます。何が必要か正直まだ分からないのですが、今の業務フローに課題がありまして。",
        "presentation": "では、プレゼンをお願いします。時間は30分ほどあります。",
        "follow_up_call": "ああ、先週お会いした方ですね。すみません、ずっとバタバタしていまして。",
        "gate_keeper": "おはようございます、[会社名]でございます。どちらにおつなぎしましょうか？",
        "networking_event": "こんにちは！今日はどういったきっかけでこちらに？",
    },
}


def get_scenario(scenario_id: str) -> Optional[Scenario]:
    """Catalog entry for ``scenario_id``; None when unknown."""
    return SCENARIOS.get(scenario_id)


def list_scenarios() -> List[Scenario]:
    return list(_CATALOG)


def get_opening_line(scenario_id: str, locale: str = DEFAULT_LOCALE) -> str:
    """Client's first line for a scenario.

    Falls back to the English table when the locale has no line for the
    scenario, and to a generic greeting when the scenario is unknown.
    """
    for table_locale in (locale, DEFAULT_LOCALE):
        line = OPENING_LINES.get(table_locale, {}).get(scenario_id)
        if line:
            return line
    return GENERIC_OPENING
