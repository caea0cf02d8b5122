"""
Coach voice: encouragement phrases by score tier.
"""

import random

HIGH_TIER_MIN = 70
MEDIUM_TIER_MIN = 40

ENCOURAGEMENT_PHRASES = {
    "high": {
        "en": [
            "Outstanding performance! Your sales flywheel is spinning fast!",
            "You nailed it! That's the kind of conversation that builds lasting relationships.",
            "Impressive! You're operating at a professional level. Keep the momentum!",
        ],
        "zh-TW": [
            "表現出色！你的業務飛輪正在高速運轉！",
            "太厲害了！這種對話品質就是建立長期關係的關鍵。",
            "令人印象深刻！你已經達到專業水準，繼續保持這個動能！",
        ],
        "zh-CN": [
            "表现出色！你的业务飞轮正在高速运转！",
            "太厉害了！这种对话品质就是建立长期关系的关键。",
            "令人印象深刻！你已经达到专业水准，继续保持这个动能！",
        ],
        "ja": [
            "素晴らしいパフォーマンスです！セールスフライホイールが高速回転しています！",
            "お見事です！このような会話が長期的な関係を築きます。",
            "印象的です！プロフェッショナルレベルに達しています。この勢いを維持しましょう！",
        ],
        "ko": [
            "탁월한 성과입니다! 세일즈 플라이휠이 빠르게 돌고 있습니다!",
            "완벽했습니다! 이런 대화가 지속적인 관계를 만듭니다.",
            "인상적입니다! 전문가 수준에 도달했습니다. 이 모멘텀을 유지하세요!",
        ],
        "th": ["ผลงานยอดเยี่ยม! ฟลายวีลการขายของคุณหมุนเร็วมาก!"],
        "vi": ["Hiệu suất xuất sắc! Bánh đà bán hàng của bạn đang quay nhanh!"],
        "ms": ["Prestasi cemerlang! Roda tenaga jualan anda berputar laju!"],
        "id": ["Performa luar biasa! Roda gila penjualan Anda berputar cepat!"],
    },
    "medium": {
        "en": [
            "Good progress! Your flywheel is gaining momentum. Keep pushing!",
            "Solid effort! A few tweaks and you'll be crushing it.",
            "You're on the right track. Remember: consistency beats intensity!",
        ],
        "zh-TW": [
            "進步很好！你的飛輪正在累積動能，繼續推動！",
            "紮實的表現！再微調一些細節就會非常出色。",
            "方向正確！記住：持續比強度重要！",
        ],
        "zh-CN": [
            "进步很好！你的飞轮正在积累动能，继续推动！",
            "扎实的表现！再微调一些细节就会非常出色。",
            "方向正确！记住：持续比强度重要！",
        ],
        "ja": [
            "良い進歩です！フライホイールが勢いを増しています。続けましょう！",
            "しっかりとした努力です！少し調整すれば素晴らしくなります。",
            "正しい方向に進んでいます。継続は力なりです！",
        ],
        "ko": [
            "좋은 진전입니다! 플라이휠이 탄력을 받고 있습니다. 계속 밀어붙이세요!",
            "탄탄한 노력입니다! 몇 가지만 조정하면 최고가 될 거예요.",
            "올바른 방향입니다. 기억하세요: 꾸준함이 강도를 이깁니다!",
        ],
        "th": ["ความก้าวหน้าดี! ฟลายวีลกำลังได้แรงส่ง ไปต่อ!"],
        "vi": ["Tiến bộ tốt! Bánh đà đang tăng đà. Tiếp tục nào!"],
        "ms": ["Kemajuan yang baik! Teruskan usaha!"],
        "id": ["Kemajuan bagus! Terus dorong momentum!"],
    },
    "low": {
        "en": [
            "Every master was once a beginner. You're building your foundation!",
            "The fact that you're practicing puts you ahead of 90% of salespeople.",
            "Great salespeople aren't born, they're made. One practice at a time!",
        ],
        "zh-TW": [
            "每一個高手都曾是新手。你正在打好基礎！",
            "光是你願意練習，就已經超越 90% 的業務人員了。",
            "頂尖業務不是天生的，是練出來的。一次一次地練習！",
        ],
        "zh-CN": [
            "每一个高手都曾是新手。你正在打好基础！",
            "光是你愿意练习，就已经超越 90% 的业务人员了。",
            "顶尖业务不是天生的，是练出来的。一次一次地练习！",
        ],
        "ja": [
            "すべてのマスターはかつて初心者でした。基礎を築いています！",
            "練習しているだけで、90%の営業マンより先を行っています。",
            "優れた営業マンは生まれつきではなく、練習で作られます！",
        ],
        "ko": [
            "모든 달인도 처음엔 초보였습니다. 기초를 다지고 있어요!",
            "연습하고 있다는 것만으로 90%의 영업사원보다 앞서 있습니다.",
            "최고의 영업사원은 태어나는 것이 아니라 만들어집니다!",
        ],
        "th": ["ทุกคนเริ่มจากศูนย์ คุณกำลังสร้างรากฐาน!"],
        "vi": ["Mọi bậc thầy đều từng là người mới bắt đầu. Bạn đang xây nền tảng!"],
        "ms": ["Setiap pakar pernah menjadi pemula. Anda sedang membina asas!"],
        "id": ["Setiap master pernah menjadi pemula. Anda sedang membangun fondasi!"],
    },
}


def encouragement_tier(score: float) -> str:
    if score >= HIGH_TIER_MIN:
        return "high"
    if score >= MEDIUM_TIER_MIN:
        return "medium"
    return "low"


def get_encouragement(score: float, locale: str = "en", rng=random) -> str:
    """Random phrase for the score's tier, in ``locale`` or else English."""
    tier = ENCOURAGEMENT_PHRASES[encouragement_tier(score)]
    phrases = tier.get(locale) or tier["en"]
    return rng.choice(phrases)
