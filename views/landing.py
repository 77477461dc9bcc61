"""Landing view — hero, how it works, benefits, footer. Render-only."""

from datetime import date
from typing import Optional

import streamlit as st

from store.models import ApplicantRecord

HOW_IT_WORKS: list[dict[str, str]] = [
    {"icon": "🚚", "title": "Register Your Ride", "description": "Tell us about your vehicle and your driving routes."},
    {"icon": "🔗", "title": "Match & Wrap", "description": "We analyze your profile and match you with a high-paying brand campaign."},
    {"icon": "💵", "title": "Get Paid Monthly", "description": "Receive guaranteed passive income deposited directly into your account."},
]

OWNER_BENEFITS: list[dict[str, str]] = [
    {"icon": "💵", "title": "Guaranteed Income", "description": "Turn your daily commute into a reliable, consistent income stream without extra effort."},
    {"icon": "🛡️", "title": "Zero Vehicle Damage", "description": "High-quality, removable vinyl wraps protect your paint and leave no residue upon removal."},
    {"icon": "⚡", "title": "Flexible Campaigns", "description": "Choose campaigns that fit your lifestyle and your geographic location."},
]

ADVERTISER_BENEFITS: list[dict[str, str]] = [
    {"icon": "📊", "title": "Superior ROI", "description": "Target specific demographics and geographies with a high-impact, mobile ad format."},
    {"icon": "👥", "title": "High Visibility", "description": "Achieve massive local exposure on major roadways and urban centers, reaching thousands daily."},
    {"icon": "🚚", "title": "Detailed Analytics", "description": "Get real-time data on campaign reach, impressions, and driver routes."},
]


def _benefit_grid(title: str, items: list[dict[str, str]]) -> None:
    st.subheader(title)
    for col, item in zip(st.columns(len(items)), items):
        with col:
            st.markdown(f"#### {item['icon']} {item['title']}")
            st.caption(item["description"])


def render_landing(record: Optional[ApplicantRecord], ready: bool) -> bool:
    """Draw the landing page. Returns True when the visitor clicked the call to action."""
    st.title("WrapRewards")
    st.markdown("**Turn your daily drive into passive income.**")

    if record is not None:
        st.info(
            f"Registration on file for **{record.full_name or 'your vehicle'}** "
            f"({record.make} {record.model}). Status: **{record.status_label}**."
        )

    label = "Update My Registration" if record is not None else "Start Earning Now"
    clicked = st.button(f"🚀 {label}", type="primary", use_container_width=True, disabled=not ready)
    if not ready:
        st.caption("Connecting…")

    st.divider()
    st.subheader("Simple, Smart, Passive Income.")
    for number, item in enumerate(HOW_IT_WORKS, start=1):
        with st.container(border=True):
            st.markdown(f"### {item['icon']} {number}. {item['title']}")
            st.write(item["description"])

    _benefit_grid("Benefits for Car Owners", OWNER_BENEFITS)
    _benefit_grid("A New Channel for Advertisers", ADVERTISER_BENEFITS)

    st.divider()
    st.caption(f"© {date.today().year} WrapRewards. All rights reserved.")
    return clicked
