from __future__ import annotations

import os
import time
from typing import Any, Dict, List

import requests
import streamlit as st


def _get_api_base() -> str:
    # Prefer env var so we don't require secrets.toml to exist.
    env = os.getenv("API_BASE")
    if env:
        return env.rstrip("/")
    try:
        # st.secrets raises if there is no secrets file at all, so guard it.
        return str(st.secrets.get("API_BASE", "http://127.0.0.1:8000")).rstrip("/")
    except Exception:
        return "http://127.0.0.1:8000"


API_BASE = _get_api_base()

STATUS_BADGES = {
    "pending": ("Pending", "gray"),
    "analyzing": ("Analyzing", "blue"),
    "complete": ("Complete", "green"),
    "error": ("Error", "red"),
}
LABEL_COLORS = {
    "AI Generated": "red",
    "Photoshopped": "orange",
    "Edited": "orange",
    "Authentic": "green",
}


def _auth_headers() -> Dict[str, str]:
    token = st.session_state.get("auth_token")
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def api_get(path: str) -> Any:
    r = requests.get(f"{API_BASE}{path}", headers=_auth_headers(), timeout=30)
    r.raise_for_status()
    return r.json()


def api_post_json(path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    r = requests.post(f"{API_BASE}{path}", json=payload, headers=_auth_headers(), timeout=30)
    r.raise_for_status()
    return r.json()


def api_delete(path: str) -> Dict[str, Any]:
    r = requests.delete(f"{API_BASE}{path}", headers=_auth_headers(), timeout=30)
    r.raise_for_status()
    return r.json()


def _error_detail(err: requests.HTTPError) -> str:
    try:
        return str(err.response.json().get("detail"))
    except Exception:
        return "Request failed. Please try again."


def _rerun() -> None:
    # Compatible rerun for new/old Streamlit versions.
    fn = getattr(st, "rerun", None) or getattr(st, "experimental_rerun", None)
    if fn:
        fn()


def _label(analysis: Dict[str, Any]) -> tuple[str, str]:
    status = analysis.get("status", "unknown")
    if status == "complete" and analysis.get("label"):
        return analysis["label"], LABEL_COLORS.get(analysis["label"], "gray")
    return STATUS_BADGES.get(status, ("Unknown", "gray"))


def render_analysis(analysis: Dict[str, Any]) -> None:
    label, color = _label(analysis)
    with st.container(border=True):
        img_col, body_col = st.columns([1, 4])
        with img_col:
            st.image(analysis["image_url"], use_container_width=True)
        with body_col:
            st.markdown(f"**:{color}[{label}]**  \n`{analysis['image_url']}`")
            st.caption(f"Submitted {analysis['created_at']}")

            res = analysis.get("result")
            if res:
                st.progress(int(res["confidence"]) / 100.0, text=f"Confidence {res['confidence']}%")
                st.write(" ".join(f"`{f}`" for f in res.get("flags", [])))
                with st.expander("Forensic report", expanded=False):
                    st.markdown(res["details_markdown"])
            elif analysis.get("status") == "error":
                st.error(analysis.get("error_message") or "Analysis failed")
            elif analysis.get("status") == "pending":
                st.info("Waiting to be analyzed.")
                if st.button("Analyze", key=f"an-{analysis['analysis_id']}"):
                    try:
                        api_post_json(f"/analyses/{analysis['analysis_id']}/analyze", {})
                    except requests.HTTPError as e:
                        st.error(_error_detail(e))
                    _rerun()
            else:
                st.info("Analysis in progress...")

            if st.button("Remove", key=f"rm-{analysis['analysis_id']}"):
                try:
                    api_delete(f"/analyses/{analysis['analysis_id']}")
                except requests.HTTPError as e:
                    st.error(_error_detail(e))
                _rerun()


st.set_page_config(page_title="PixelDetect", layout="wide")
st.title("PixelDetect")
st.caption("Paste an image URL from X (Twitter) to detect AI generation, photoshop, or edits.")

# -----------------
# Auth (passwordless)
# -----------------
st.session_state.setdefault("auth_token", None)

with st.sidebar:
    st.header("Login")
    if st.session_state.get("auth_token"):
        try:
            me = api_get("/auth/me")
            st.success(f"Logged in as {me['email']}")
        except requests.HTTPError:
            # Expired token: fall back to the login form.
            st.session_state["auth_token"] = None
            _rerun()
        if st.button("Log out"):
            st.session_state["auth_token"] = None
            _rerun()
    else:
        email = st.text_input("Email")
        if st.button("Send login code", disabled=not email):
            try:
                api_post_json("/auth/request_code", {"email": email})
                st.session_state["login_email"] = email
                st.info("Check your inbox for a 6-digit code.")
            except requests.HTTPError as e:
                st.error(_error_detail(e))
        if st.session_state.get("login_email"):
            code = st.text_input("Login code", max_chars=6)
            if st.button("Verify", disabled=len(code) != 6):
                try:
                    tok = api_post_json("/auth/verify_code", {"email": st.session_state["login_email"], "code": code})
                    st.session_state["auth_token"] = tok["access_token"]
                    st.session_state.pop("login_email", None)
                    _rerun()
                except requests.HTTPError as e:
                    st.error(_error_detail(e))

if not st.session_state.get("auth_token"):
    st.info("Log in to analyze images.")
    st.stop()

st.header("Analyze image")
with st.form("submit", clear_on_submit=True):
    url = st.text_input("Image URL", placeholder="https://pbs.twimg.com/media/...")
    submitted = st.form_submit_button("Analyze", type="primary")

if submitted and url.strip():
    try:
        created = api_post_json("/analyses", {"image_url": url.strip()})
        # Start analysis in the background; the list below picks up progress.
        api_post_json(f"/analyses/{created['analysis_id']}/analyze", {})
    except requests.HTTPError as e:
        st.error(_error_detail(e))

analyses: List[Dict[str, Any]] = api_get("/analyses")

head_col, count_col = st.columns([4, 1])
with head_col:
    st.header("Analysis history")
with count_col:
    if analyses:
        st.caption(f"{len(analyses)} {'analysis' if len(analyses) == 1 else 'analyses'}")

if not analyses:
    st.write("No images analyzed yet. Paste an image URL above to get started.")

for a in analyses:
    render_analysis(a)

if any(a.get("status") in ("pending", "analyzing") for a in analyses):
    time.sleep(2.0)
    _rerun()
