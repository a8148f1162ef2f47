from __future__ import annotations

import logging

import streamlit as st
from dotenv import load_dotenv

from titanic_insights.charts import build_figure
from titanic_insights.config import AppConfig
from titanic_insights.gateway_client import GatewayError, QueryGatewayClient
from titanic_insights.llm_clients import create_llm_client
from titanic_insights.logging_utils import log_file_path, setup_logging, tail_log
from titanic_insights.orchestrator import ChatMessage, ChatOrchestrator
from titanic_insights.planner import QueryPlanner

load_dotenv()
config = AppConfig.from_env()
logger = setup_logging(config.log_dir, log_level=logging.INFO)

st.set_page_config(
    page_title="Titanic Insights AI",
    page_icon=":ship:",
    layout="centered",
)

GREETING = (
    "Hello! I'm your Titanic Data Assistant. "
    "Ask me anything about the Titanic dataset!"
)
SUGGESTIONS = (
    "Survival rate by class",
    "Average age of survivors",
    "Embarkation ports",
)
PROVIDERS = ("gemini", "openai", "ollama")


def _build_planner(provider: str) -> QueryPlanner:
    llm_client = create_llm_client(
        provider=provider,
        gemini_api_key=config.gemini_api_key,
        gemini_model=config.gemini_model,
        openai_api_key=config.openai_api_key,
        openai_model=config.openai_model,
        ollama_base_url=config.ollama_base_url,
        ollama_model=config.ollama_model,
        json_output=True,
        timeout_seconds=config.request_timeout_seconds,
    )
    return QueryPlanner(llm_client)


def _get_orchestrator(provider: str) -> ChatOrchestrator | None:
    orchestrator: ChatOrchestrator | None = st.session_state.get("orchestrator")
    if orchestrator is not None and st.session_state.get("provider") == provider:
        return orchestrator

    try:
        planner = _build_planner(provider)
    except Exception as exc:
        st.error(f"LLM configuration failed: {exc}")
        logger.exception("LLM client setup failed: %s", exc)
        return None

    if orchestrator is None:
        gateway = QueryGatewayClient(
            base_url=config.gateway_url,
            timeout_seconds=config.request_timeout_seconds,
        )
        orchestrator = ChatOrchestrator(planner, gateway, greeting=GREETING)
        logger.info("Started chat session with provider=%s", provider)
    else:
        # Keep the conversation when switching providers
        orchestrator.planner = planner
        logger.info("Switched chat provider to %s", provider)

    st.session_state.orchestrator = orchestrator
    st.session_state.provider = provider
    return orchestrator


def _render_message(message: ChatMessage) -> None:
    with st.chat_message(message.role):
        st.markdown(message.content)
        if message.sql:
            with st.expander("View SQL Query"):
                st.code(message.sql, language="sql")

        figure = build_figure(message.chart)
        if figure is not None:
            st.plotly_chart(figure, width="stretch", key=f"chart_{message.id}")

        st.caption(message.timestamp.strftime("%H:%M"))


def _render_sidebar() -> str:
    st.sidebar.header("Settings")
    default_index = (
        PROVIDERS.index(config.llm_provider) if config.llm_provider in PROVIDERS else 0
    )
    provider = st.sidebar.selectbox("LLM Provider", options=PROVIDERS, index=default_index)

    st.sidebar.subheader("Query Gateway")
    st.sidebar.caption(f"`{config.gateway_url}`")
    try:
        status = QueryGatewayClient(config.gateway_url, timeout_seconds=5).health()
        if status.get("status") == "ok":
            st.sidebar.success(f"Online: {status.get('records', 0)} passenger records")
        else:
            st.sidebar.warning(f"Gateway error: {status.get('message', 'unknown')}")
    except GatewayError as exc:
        st.sidebar.error(str(exc))

    with st.sidebar.expander("Application Log"):
        st.code(tail_log(log_file_path(config.log_dir), max_lines=200), language="text")
    st.sidebar.caption(f"Logs: `{log_file_path(config.log_dir)}`")
    return provider


def main() -> None:
    st.title("Titanic Insights AI")
    st.caption("Data Analysis Agent")

    provider = _render_sidebar()
    orchestrator = _get_orchestrator(provider)
    if orchestrator is None:
        return

    for message in orchestrator.messages:
        _render_message(message)

    suggestion = None
    columns = st.columns(len(SUGGESTIONS))
    for column, text in zip(columns, SUGGESTIONS):
        if column.button(text, disabled=orchestrator.is_loading):
            suggestion = text

    prompt = st.chat_input(
        "Ask about the Titanic dataset...",
        disabled=orchestrator.is_loading,
    )
    question = prompt or suggestion
    if not question:
        return

    with st.chat_message("user"):
        st.markdown(question)
    with st.spinner("Analyzing dataset..."):
        orchestrator.submit(question)
    st.rerun()


if __name__ == "__main__":
    main()
