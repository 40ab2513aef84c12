"""A Streamlit chat frontend for the Travel Agent API."""

import json
import os
import streamlit as st
import requests

# --- Page and API Configuration ---
st.set_page_config(page_title="Travel Planner", page_icon="✈️", layout="centered")
API_BASE = os.getenv("TRAVEL_AGENT_API", "http://localhost:8000")
PLATFORM = os.getenv("CLIENT_PLATFORM", "web")

FIRST_SUGGESTIONS = [
    "Plan a 3-day trip to Paris",
    "Best attractions near me" if PLATFORM != "web" else None,
    "Best destinations for summer vacation",
    "Create an itinerary for Tokyo",
]


def get_api_session():
    """Gets the requests.Session object from streamlit's session state."""
    if "api_session" not in st.session_state:
        st.session_state.api_session = requests.Session()
    return st.session_state.api_session


# --- Card renderers ---


def render_itinerary(card: dict):
    """Itinerary card: destination, duration, then each day's activities."""
    data = card["data"]
    with st.container(border=True):
        st.caption(card.get("title", "Your Travel Itinerary"))
        st.subheader(data["destination"])
        st.write(data["duration"])
        for day in data["days"]:
            with st.expander(f"Day {day['day']}: {day['title']}", expanded=day["day"] == 1):
                for item in day["activities"]:
                    st.markdown(f"**{item['time']}** · {item['activity']}  \n📍 {item['location']}")
                    if item.get("notes"):
                        st.caption(item["notes"])


def render_destination(card: dict):
    data = card["data"]
    with st.container(border=True):
        st.caption(card.get("title", "Destination Information"))
        st.subheader(data["name"])
        st.write(data["description"])
        st.markdown(f"🌤️ **Best Time to Visit:** {data['best_time_to_visit']}")
        st.markdown(f"💰 **Estimated Budget:** {data['estimated_budget']}")
        if data["highlights"]:
            st.markdown("✨ **Highlights**")
            for highlight in data["highlights"]:
                st.markdown(f"- {highlight}")


def render_map(card: dict):
    points = card["points"]
    with st.container(border=True):
        st.caption(card["title"])
        if not points:
            st.info("No places found.")
            return
        st.map(
            {
                "lat": [p["latitude"] for p in points],
                "lon": [p["longitude"] for p in points],
            }
        )
        for point in points:
            status = "🟢 Open" if point["is_open"] else "🔴 Closed"
            rating = f"⭐ {point['rating']} ({point['user_ratings_total']})" if point.get("rating") else ""
            st.markdown(f"**{point['name']}** {rating} {status}  \n{point['address']}")


def render_placeholder(placeholder: dict):
    with st.container(border=True):
        st.caption(placeholder["title"])
        st.progress(50)


RENDERERS = {
    "itinerary": render_itinerary,
    "destination": render_destination,
    "map": render_map,
}


def render_result(result: dict):
    """Renders any result kind returned by the chat action."""
    if result["kind"] == "text":
        st.markdown(result["content"])
    else:
        RENDERERS[result["kind"]](result)


def render_entry(entry: dict):
    with st.chat_message(entry["role"]):
        if entry.get("result"):
            render_result(entry["result"])
        elif entry.get("error"):
            st.error(entry["error"])
        else:
            st.markdown(entry["content"])


def stream_chat(prompt: str, slot) -> dict:
    """Submits a prompt and keeps `slot` showing the latest streamed state."""
    response = get_api_session().post(
        f"{API_BASE}/chat/stream",
        json={"message": prompt, "platform": PLATFORM},
        stream=True,
        timeout=120,
    )
    if response.status_code != 200:
        return {"role": "assistant", "error": f"API Error: {response.status_code} - {response.text}"}

    text = ""
    for line in response.iter_lines(decode_unicode=True):
        if not line or not line.startswith("data: "):
            continue
        event = json.loads(line[len("data: "):])
        kind = event.get("type")
        if kind == "text":
            text += event["content"]
            slot.markdown(text)
        elif kind == "pending":
            with slot.container():
                render_placeholder(event["placeholder"])
        elif kind == "resolved":
            with slot.container():
                render_result(event["result"])
            return {"role": "assistant", "result": event["result"]}
        elif kind == "error":
            slot.empty()
            return {"role": "assistant", "error": event["error"]}

    return {"role": "assistant", "error": "The response ended without a result."}


def submit(prompt: str):
    # Optimistic user entry before the round trip
    st.session_state.messages.append({"role": "user", "content": prompt})
    with chat_container:
        render_entry(st.session_state.messages[-1])
        with st.chat_message("assistant"):
            slot = st.empty()
            slot.markdown("🧠 Thinking...")
            entry = stream_chat(prompt, slot)
    st.session_state.messages.append(entry)


# --- Main App ---
st.title("✈️ Travel Planner")

try:
    health_response = get_api_session().get(f"{API_BASE}/health", timeout=3)
    if health_response.status_code != 200:
        st.error("API is unhealthy. Please start the backend server.", icon="🚨")
        st.stop()
except requests.exceptions.ConnectionError:
    st.error("Could not connect to the API. Please ensure the backend server is running.", icon="🚨")
    st.stop()

if "messages" not in st.session_state:
    st.session_state.messages = []

if st.session_state.messages and st.button("📝 New chat"):
    get_api_session().post(f"{API_BASE}/chat/new", timeout=10)
    st.session_state.messages = []
    st.rerun()

chat_container = st.container()
with chat_container:
    for message in st.session_state.messages:
        render_entry(message)

if not st.session_state.messages:
    for suggestion in filter(None, FIRST_SUGGESTIONS):
        if st.button(suggestion):
            submit(suggestion)
            st.rerun()

if prompt := st.chat_input("Where do you want to go?"):
    submit(prompt)
    st.rerun()
