"""Stored user preferences and their defaults."""

from typing import Any, Dict, Optional

from sqlmodel import Session, select

from marquee.models.user_preferences import UserPreferences
from marquee.utils.clock import utcnow

# Wire name -> model attribute
PREFERENCE_FIELDS = {
    "language": "language",
    "autoplayNext": "autoplay_next",
    "autoplayTrailer": "autoplay_trailer",
    "subtitleEnabled": "subtitle_enabled",
    "subtitleLang": "subtitle_lang",
    "subtitleSize": "subtitle_size",
    "subtitleColor": "subtitle_color",
    "subtitleBg": "subtitle_bg",
    "subtitleFont": "subtitle_font",
    "emailNewReleases": "email_new_releases",
    "emailRecommendations": "email_recommendations",
    "emailAccountAlerts": "email_account_alerts",
    "emailMarketing": "email_marketing",
    "pushNewReleases": "push_new_releases",
    "pushRecommendations": "push_recommendations",
    "pushAccountAlerts": "push_account_alerts",
}


def default_preferences(language: str) -> Dict[str, Any]:
    return {
        "language": language,
        "autoplayNext": True,
        "autoplayTrailer": True,
        "subtitleEnabled": False,
        "subtitleLang": language,
        "subtitleSize": "medium",
        "subtitleColor": "#FFFFFF",
        "subtitleBg": "transparent",
        "subtitleFont": "default",
        "emailNewReleases": True,
        "emailRecommendations": True,
        "emailAccountAlerts": True,
        "emailMarketing": False,
        "pushNewReleases": True,
        "pushRecommendations": False,
        "pushAccountAlerts": True,
    }


def get_preferences(session: Session, user_id: str) -> Optional[UserPreferences]:
    return session.exec(select(UserPreferences).where(UserPreferences.user_id == user_id)).first()


def get_saved_language(session: Session, user_id: str) -> Optional[str]:
    prefs = get_preferences(session, user_id)
    return prefs.language if prefs else None


def preferences_to_dict(prefs: UserPreferences) -> Dict[str, Any]:
    return {wire: getattr(prefs, attr) for wire, attr in PREFERENCE_FIELDS.items()}


def upsert_preferences(session: Session, user_id: str, changes: Dict[str, Any], default_language: str) -> UserPreferences:
    """Apply `changes` (model attribute names); creates the row on first save. Commits."""
    prefs = get_preferences(session, user_id)
    if prefs is None:
        prefs = UserPreferences(user_id=user_id, language=default_language)
    for attr, value in changes.items():
        setattr(prefs, attr, value)
    prefs.updated_at = utcnow()
    session.add(prefs)
    session.commit()
    session.refresh(prefs)
    return prefs
