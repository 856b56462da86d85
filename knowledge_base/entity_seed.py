"""
Entity graph seed data — Korea-focused geopolitical/market knowledge base.

Countries, regions, tradable assets, sectors, listed companies, institutions
and event templates, plus the weighted relationships the fusion engine
propagates along. Loaded once at process start; never mutated.
"""
from __future__ import annotations

from knowledge_base.schema import Edge, Entity

# ─── Entities ────────────────────────────────────────────────────────────────

SEED_ENTITIES: list[Entity] = [
    # ── Countries ────────────────────────────────────────────────────────
    Entity("country:south_korea", "country", "South Korea", "대한민국", ("korea", "rok", "한국")),
    Entity("country:north_korea", "country", "North Korea", "북한", ("dprk", "nk", "조선")),
    Entity("country:usa", "country", "United States", "미국", ("us", "america", "미")),
    Entity("country:china", "country", "China", "중국", ("prc", "beijing", "중")),
    Entity("country:japan", "country", "Japan", "일본", ("jpn", "tokyo", "일")),
    Entity("country:russia", "country", "Russia", "러시아", ("rus", "moscow")),
    Entity("country:taiwan", "country", "Taiwan", "대만", ("roc", "taipei", "tpe")),
    Entity("country:iran", "country", "Iran", "이란", ("tehran", "persia")),
    Entity("country:saudi_arabia", "country", "Saudi Arabia", "사우디아라비아", ("ksa", "riyadh", "aramco")),
    Entity("country:ukraine", "country", "Ukraine", "우크라이나", ("kyiv", "odesa")),
    Entity("country:israel", "country", "Israel", "이스라엘", ("tel aviv", "jerusalem")),

    # ── Regions ──────────────────────────────────────────────────────────
    Entity("region:korean_peninsula", "region", "Korean Peninsula", "한반도", ("korea", "dmz", "nll")),
    Entity("region:taiwan_strait", "region", "Taiwan Strait", "대만해협", ("taiwan", "formosa strait")),
    Entity("region:middle_east", "region", "Middle East", "중동", ("opec", "hormuz", "gulf")),
    Entity("region:east_asia", "region", "East Asia", "동아시아", ("asia pacific",)),
    Entity("region:europe", "region", "Europe", "유럽", ("eu", "nato", "eastern europe")),
    Entity("region:south_china_sea", "region", "South China Sea", "남중국해", ("spratlys", "paracels")),

    # ── Assets ───────────────────────────────────────────────────────────
    Entity("asset:KS11", "asset", "KOSPI", "코스피 지수", ("kospi", "^ks11"), {"ticker": "^KS11"}),
    Entity("asset:KQ11", "asset", "KOSDAQ", "코스닥 지수", ("kosdaq", "^kq11"), {"ticker": "^KQ11"}),
    Entity("asset:USDKRW", "asset", "USD/KRW", "원달러 환율", ("krw", "won", "fx"), {"ticker": "KRW=X"}),
    Entity("asset:SPX", "asset", "S&P 500", "S&P 500", ("spx", "sp500"), {"ticker": "^SPX"}),
    Entity("asset:VIX", "asset", "VIX Fear Index", "VIX 공포지수", ("vix", "volatility"), {"ticker": "^VIX"}),
    Entity("asset:GOLD", "asset", "Gold", "금 현물", ("gold", "xau", "gc=f"), {"ticker": "GC=F"}),
    Entity("asset:OIL", "asset", "Crude Oil (WTI)", "WTI 원유", ("wti", "oil", "brent"), {"ticker": "CL=F"}),
    Entity("asset:BTC", "asset", "Bitcoin", "비트코인", ("btc", "crypto", "upbit")),
    Entity("asset:USDJPY", "asset", "USD/JPY", "엔달러", ("jpy", "yen"), {"ticker": "JPY=X"}),
    Entity("asset:US10Y", "asset", "US 10Y Treasury", "미국 10년물 국채", ("treasury", "bond", "tnx")),
    Entity("asset:DXY", "asset", "US Dollar Index", "달러 인덱스", ("dxy", "dollar")),

    # ── Sectors ──────────────────────────────────────────────────────────
    Entity("sector:defense", "sector", "Defense", "방산", ("military", "weapons", "aerospace")),
    Entity("sector:semiconductor", "sector", "Semiconductor", "반도체", ("chip", "fab", "memory", "dram")),
    Entity("sector:energy", "sector", "Energy", "에너지", ("oil", "gas", "refinery")),
    Entity("sector:shipping", "sector", "Shipping", "해운", ("bdry", "container", "freight")),
    Entity("sector:nuclear_power", "sector", "Nuclear Power", "원자력", ("uranium", "nuclear energy")),
    Entity("sector:bio_pharma", "sector", "Bio/Pharma", "바이오/제약", ("vaccine", "pandemic", "biotech")),
    Entity("sector:cybersecurity", "sector", "Cybersecurity", "사이버보안", ("security", "firewall")),
    Entity("sector:finance", "sector", "Finance / Banks", "금융/은행", ("bank", "credit", "insurance")),
    Entity("sector:autos", "sector", "Automobiles", "자동차", ("ev", "car", "auto")),
    Entity("sector:batteries", "sector", "EV Batteries", "배터리/2차전지", ("battery", "ev", "cathode")),

    # ── Companies ────────────────────────────────────────────────────────
    Entity("company:samsung_elec", "company", "Samsung Electronics", "삼성전자", ("005930", "samsung"),
           {"ticker": "005930.KS", "benchmark_weight": 0.25}),
    Entity("company:sk_hynix", "company", "SK Hynix", "SK하이닉스", ("000660", "hynix", "memory"),
           {"ticker": "000660.KS"}),
    Entity("company:hanwha_aero", "company", "Hanwha Aerospace", "한화에어로스페이스", ("012450", "hanwha"),
           {"ticker": "012450.KS"}),
    Entity("company:kai", "company", "Korea Aerospace (KAI)", "한국항공우주", ("047810", "kai"),
           {"ticker": "047810.KS"}),
    Entity("company:lge_battery", "company", "LG Energy Solution", "LG에너지솔루션", ("373220", "lges"),
           {"ticker": "373220.KS"}),
    Entity("company:samsung_sdi", "company", "Samsung SDI", "삼성SDI", ("006400",), {"ticker": "006400.KS"}),
    Entity("company:celltrion", "company", "Celltrion", "셀트리온", ("068270",), {"ticker": "068270.KS"}),
    Entity("company:hhi", "company", "HD Hyundai Heavy Industries", "HD현대중공업", ("329180",),
           {"ticker": "329180.KS"}),
    Entity("company:tsmc", "company", "TSMC", "TSMC", ("tsm", "taiwan semi"), {"ticker": "TSM"}),

    # ── Institutions ─────────────────────────────────────────────────────
    Entity("inst:fed", "institution", "US Federal Reserve", "미 연준(Fed)", ("fomc", "fed", "powell")),
    Entity("inst:bok", "institution", "Bank of Korea", "한국은행(BOK)", ("bok", "한은", "mpb")),
    Entity("inst:boj", "institution", "Bank of Japan", "일본은행(BOJ)", ("boj", "일은")),
    Entity("inst:ecb", "institution", "European Central Bank", "유럽중앙은행(ECB)", ("ecb", "lagarde")),
    Entity("inst:opec", "institution", "OPEC+", "OPEC+", ("opec", "oil cartel")),
    Entity("inst:iaea", "institution", "IAEA", "국제원자력기구(IAEA)", ("iaea", "nuclear watchdog")),

    # ── Event templates ──────────────────────────────────────────────────
    Entity("event:nk_missile", "event_template", "NK Missile Launch", "북한 미사일 발사",
           ("missile", "icbm", "slbm", "provocation", "화성")),
    Entity("event:nk_nuclear", "event_template", "NK Nuclear Test", "북한 핵실험",
           ("nuclear test", "underground", "핵")),
    Entity("event:taiwan_crisis", "event_template", "Taiwan Strait Crisis", "대만해협 위기",
           ("taiwan", "blockade", "invasion", "pla")),
    Entity("event:oil_shock", "event_template", "Oil Supply Shock", "원유 공급 충격",
           ("oil", "opec", "embargo", "hormuz", "aramco")),
    Entity("event:fed_pivot", "event_template", "Fed Policy Pivot", "연준 정책 전환",
           ("rate cut", "rate hike", "pivot", "fomc")),
    Entity("event:pandemic", "event_template", "Pandemic / Outbreak", "팬데믹/감염병 발생",
           ("pandemic", "virus", "outbreak", "who", "quarantine")),
    Entity("event:korea_politics", "event_template", "Korean Political Crisis", "한국 정치 위기",
           ("탄핵", "계엄", "impeachment", "martial law", "국회")),
]


# ─── Edges ───────────────────────────────────────────────────────────────────

SEED_EDGES: list[Edge] = [
    # ── Geographic containment ───────────────────────────────────────────
    Edge("country:north_korea", "region:korean_peninsula", "located_in", 1.0),
    Edge("country:south_korea", "region:korean_peninsula", "located_in", 1.0),
    Edge("country:taiwan", "region:taiwan_strait", "located_in", 1.0),
    Edge("country:china", "region:taiwan_strait", "located_in", 0.7),
    Edge("country:china", "region:south_china_sea", "located_in", 0.9),
    Edge("country:iran", "region:middle_east", "located_in", 1.0),
    Edge("country:saudi_arabia", "region:middle_east", "located_in", 1.0),
    Edge("country:israel", "region:middle_east", "located_in", 1.0),
    Edge("country:ukraine", "region:europe", "located_in", 0.8),
    Edge("country:russia", "region:europe", "located_in", 0.5),
    Edge("country:japan", "region:east_asia", "located_in", 1.0),
    Edge("country:south_korea", "region:east_asia", "located_in", 1.0),

    # ── Adversarial / alliance ───────────────────────────────────────────
    Edge("country:north_korea", "country:south_korea", "adversary_of", 1.0),
    Edge("country:north_korea", "country:usa", "adversary_of", 0.9),
    Edge("country:north_korea", "country:japan", "adversary_of", 0.8),
    Edge("country:china", "country:taiwan", "adversary_of", 0.85),
    Edge("country:russia", "country:ukraine", "adversary_of", 1.0),
    Edge("country:iran", "country:israel", "adversary_of", 0.9, directional=False),
    Edge("country:usa", "country:south_korea", "ally_of", 0.95),
    Edge("country:usa", "country:japan", "ally_of", 0.9),

    # ── NK events → assets/sectors ───────────────────────────────────────
    Edge("event:nk_missile", "country:north_korea", "affects", 1.0),
    Edge("event:nk_missile", "region:korean_peninsula", "affects", 1.0),
    Edge("event:nk_missile", "asset:KS11", "affects", 0.75, meta={"direction": "risk_off"}),
    Edge("event:nk_missile", "asset:USDKRW", "affects", 0.80, meta={"direction": "risk_off", "note": "KRW weakens"}),
    Edge("event:nk_missile", "asset:GOLD", "affects", 0.55, meta={"direction": "risk_on"}),
    Edge("event:nk_missile", "asset:USDJPY", "affects", 0.55, meta={"direction": "risk_off", "note": "JPY strengthens"}),
    Edge("event:nk_missile", "sector:defense", "affects", 0.90, meta={"direction": "risk_on"}),
    Edge("event:nk_nuclear", "event:nk_missile", "affects", 0.9, meta={"note": "nuclear test amplifies missile risk"}),
    Edge("event:nk_nuclear", "asset:KS11", "affects", 0.90, meta={"direction": "risk_off"}),
    Edge("event:nk_nuclear", "sector:nuclear_power", "affects", 0.6, meta={"direction": "risk_off"}),

    # ── Taiwan → semiconductors ──────────────────────────────────────────
    Edge("event:taiwan_crisis", "region:taiwan_strait", "affects", 1.0),
    Edge("event:taiwan_crisis", "company:tsmc", "affects", 1.0, meta={"direction": "risk_off"}),
    Edge("event:taiwan_crisis", "sector:semiconductor", "affects", 0.95, meta={"direction": "risk_off"}),
    Edge("event:taiwan_crisis", "company:samsung_elec", "affects", 0.65,
         meta={"direction": "ambiguous", "note": "TSMC replacement demand vs. risk-off"}),
    Edge("event:taiwan_crisis", "company:sk_hynix", "affects", 0.60, meta={"direction": "ambiguous"}),
    Edge("event:taiwan_crisis", "asset:KS11", "affects", 0.70, meta={"direction": "risk_off"}),
    Edge("event:taiwan_crisis", "sector:shipping", "affects", 0.55,
         meta={"direction": "risk_off", "note": "Taiwan Strait shipping lane blockade"}),

    # ── Companies → sectors ──────────────────────────────────────────────
    Edge("company:samsung_elec", "sector:semiconductor", "belongs_to_sector", 1.0),
    Edge("company:sk_hynix", "sector:semiconductor", "belongs_to_sector", 1.0),
    Edge("company:tsmc", "sector:semiconductor", "belongs_to_sector", 1.0),
    Edge("company:hanwha_aero", "sector:defense", "belongs_to_sector", 1.0),
    Edge("company:kai", "sector:defense", "belongs_to_sector", 1.0),
    Edge("company:hhi", "sector:shipping", "belongs_to_sector", 0.6),
    Edge("company:hhi", "sector:defense", "belongs_to_sector", 0.5, meta={"note": "Naval vessel production"}),
    Edge("company:lge_battery", "sector:batteries", "belongs_to_sector", 1.0),
    Edge("company:samsung_sdi", "sector:batteries", "belongs_to_sector", 1.0),
    Edge("company:celltrion", "sector:bio_pharma", "belongs_to_sector", 1.0),

    # ── KOSPI composition ────────────────────────────────────────────────
    Edge("company:samsung_elec", "asset:KS11", "affects", 0.25, meta={"note": "~25% KOSPI weight"}),
    Edge("company:sk_hynix", "asset:KS11", "affects", 0.06),

    # ── Oil shock ────────────────────────────────────────────────────────
    Edge("event:oil_shock", "region:middle_east", "affects", 0.8),
    Edge("event:oil_shock", "asset:OIL", "affects", 1.0, meta={"direction": "risk_on"}),
    Edge("event:oil_shock", "sector:energy", "affects", 0.85, meta={"direction": "risk_on"}),
    Edge("event:oil_shock", "asset:KS11", "affects", 0.60, meta={"direction": "risk_off", "note": "Korea energy importer"}),
    Edge("event:oil_shock", "asset:USDKRW", "affects", 0.55, meta={"direction": "risk_off"}),
    Edge("inst:opec", "asset:OIL", "affects", 0.80),
    Edge("country:saudi_arabia", "asset:OIL", "produces", 0.85),
    Edge("country:south_korea", "asset:OIL", "consumes", 0.70),

    # ── Monetary policy ──────────────────────────────────────────────────
    Edge("event:fed_pivot", "inst:fed", "affects", 1.0),
    Edge("inst:fed", "asset:US10Y", "affects", 0.90),
    Edge("inst:fed", "asset:DXY", "affects", 0.85),
    Edge("inst:fed", "asset:USDKRW", "affects", 0.70),
    Edge("inst:fed", "asset:SPX", "affects", 0.80),
    Edge("inst:bok", "asset:USDKRW", "affects", 0.80),
    Edge("inst:bok", "asset:KS11", "affects", 0.60),
    Edge("inst:boj", "asset:USDJPY", "affects", 0.80),
    Edge("inst:ecb", "region:europe", "affects", 0.60),
    Edge("inst:iaea", "event:nk_nuclear", "monitors", 0.70),

    # ── Pandemic ─────────────────────────────────────────────────────────
    Edge("event:pandemic", "sector:bio_pharma", "affects", 0.90, meta={"direction": "risk_on"}),
    Edge("event:pandemic", "asset:KS11", "affects", 0.75, meta={"direction": "risk_off"}),
    Edge("event:pandemic", "sector:shipping", "affects", 0.60, meta={"direction": "risk_off"}),
    Edge("event:pandemic", "asset:OIL", "affects", 0.70, meta={"direction": "risk_off", "note": "demand destruction"}),

    # ── Korean political crisis ──────────────────────────────────────────
    Edge("event:korea_politics", "country:south_korea", "affects", 1.0),
    Edge("event:korea_politics", "asset:KS11", "affects", 0.85, meta={"direction": "risk_off"}),
    Edge("event:korea_politics", "asset:USDKRW", "affects", 0.90, meta={"direction": "risk_off"}),
    Edge("event:korea_politics", "asset:KQ11", "affects", 0.80, meta={"direction": "risk_off"}),

    # ── Safe-haven correlations (inverse) ────────────────────────────────
    Edge("asset:VIX", "asset:KS11", "historically_correlated", 0.80, meta={"inverse": True}),
    Edge("asset:VIX", "asset:SPX", "historically_correlated", 0.90, meta={"inverse": True}),
    Edge("asset:USDKRW", "asset:KS11", "historically_correlated", 0.75, meta={"inverse": True}),
    Edge("asset:GOLD", "asset:USDJPY", "historically_correlated", 0.60, directional=False),
    Edge("asset:DXY", "asset:GOLD", "historically_correlated", 0.70, meta={"inverse": True}),

    # ── Supply chain dependencies ────────────────────────────────────────
    Edge("country:japan", "sector:semiconductor", "supply_chain_dependency", 0.70,
         meta={"note": "photoresist, fluorine materials"}),
    Edge("country:china", "sector:batteries", "supply_chain_dependency", 0.80,
         meta={"note": "lithium, cathode materials"}),
    Edge("sector:semiconductor", "sector:autos", "supply_chain_dependency", 0.65),
    Edge("sector:semiconductor", "sector:batteries", "supply_chain_dependency", 0.50),
]


# ─── Historical analogues ────────────────────────────────────────────────────
# Referenced by inference rules; the narrative renders the title and year

HISTORICAL_PATTERNS: dict[str, dict[str, str]] = {
    "nk-icbm-2017": {"title": "North Korea ICBM + H-bomb test", "year": "2017"},
    "nk-2022-icbm": {"title": "North Korea Hwasong-17 ICBM test", "year": "2022"},
    "kospi-martial-law-2024": {"title": "South Korea martial law declaration", "year": "2024"},
    "ukraine-invasion-2022": {"title": "Russia invades Ukraine", "year": "2022"},
    "gulf-war-1990": {"title": "Iraq invades Kuwait", "year": "1990"},
    "gfc-2008": {"title": "Global financial crisis", "year": "2008"},
    "asian-financial-crisis-1997": {"title": "Asian financial crisis", "year": "1997"},
    "covid-2020": {"title": "COVID-19 market crash", "year": "2020"},
    "mers-2015": {"title": "MERS outbreak in Korea", "year": "2015"},
    "fukushima-2011": {"title": "Fukushima nuclear disaster", "year": "2011"},
    "wannacry-2017": {"title": "WannaCry ransomware attack", "year": "2017"},
    "oil-embargo-1973": {"title": "OPEC oil embargo", "year": "1973"},
    "aramco-attack-2019": {"title": "Saudi Aramco drone attack", "year": "2019"},
    "us-china-tariffs-2018": {"title": "US-China tariff war", "year": "2018"},
    "japan-korea-trade-dispute-2019": {"title": "Japan-Korea export control dispute", "year": "2019"},
}


def describe_pattern(pattern_id: str) -> str:
    """Human-readable label for a historical pattern id (falls back to the id)."""
    pattern = HISTORICAL_PATTERNS.get(pattern_id)
    if pattern is None:
        return pattern_id
    return f"{pattern['title']} ({pattern['year']})"
