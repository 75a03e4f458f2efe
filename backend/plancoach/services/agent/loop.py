"""
Agent Loop - bounded multi-round conversation driver.

One top-level call sends the conversation to the model, runs requested
tools, continues truncated output, and suspends on clarifying questions
until the caller answers. Built on a LangGraph state machine:

    send -> execute_tools -> send
    send -> continue_truncated -> send
    send -> final_turn -> send | END
"""
import asyncio
from typing import Any, Callable, List, Optional

from langgraph.graph import END, StateGraph

from plancoach.core.config import settings
from plancoach.core.errors import AgentError, InputNotPendingError, MaxRoundsExceededError
from plancoach.core.logging import AgentDecisionLogger, AgentTraceContext, get_logger
from plancoach.models.conversation import Message, ModelResponse, StopReason, ToolDefinition
from plancoach.prompts import (
    CONTINUE_TRUNCATED_PROMPT,
    EMPTY_RESPONSE_PROMPT,
    NO_FOLLOW_UP_DIRECTIVE,
)
from plancoach.services.adapter.provider import AIProviderAdapter
from plancoach.services.agent.state import GenerationStatus, LoopState
from plancoach.services.agent.tools.dispatcher import ToolDispatcher
from plancoach.services.agent.tools.response_parser import ResponseParser

logger = get_logger(__name__)
decision_logger = AgentDecisionLogger(logger)

MAX_ROUNDS_REASON = "Max conversation rounds exceeded"

StatusCallback = Callable[[GenerationStatus], None]


class AgentLoop:
    """
    Drives one conversation at a time against a model adapter.

    Usage:
        loop = AgentLoop(adapter, ToolDispatcher(), model="gpt-4o")
        text = await loop.run(user_prompt, system_prompt)

    run() returns None when the caller cancels. While status is
    waiting_for_input, answer with submit_user_response() or decline with
    cancel_pending_input().
    """

    def __init__(
        self,
        adapter: AIProviderAdapter,
        dispatcher: Optional[ToolDispatcher] = None,
        model: Optional[str] = None,
        max_rounds: Optional[int] = None,
        on_status: Optional[StatusCallback] = None,
    ):
        self.adapter = adapter
        self.dispatcher = dispatcher or ToolDispatcher()
        self.model = model
        self.max_rounds = max_rounds or settings.AGENT_MAX_ROUNDS
        self.on_status = on_status
        self.parser = ResponseParser()

        self._status = GenerationStatus.starting()
        self._total_tokens = 0
        self._rounds_used = 0
        self._cancel_requested = False
        self._pending_input: Optional[asyncio.Future] = None
        self._task: Optional[asyncio.Future] = None

        # Per-call settings
        self._system_prompt = ""
        self._tools: List[ToolDefinition] = []
        self._expects_json = True
        self._trace: Optional[AgentTraceContext] = None

        self._graph = self._build_graph()

    # ========================================
    # Public Interface
    # ========================================

    @property
    def status(self) -> GenerationStatus:
        return self._status

    @property
    def total_tokens_used(self) -> int:
        """Input plus output tokens of the current or last call."""
        return self._total_tokens

    @property
    def rounds_used(self) -> int:
        return self._rounds_used

    @property
    def is_waiting_for_input(self) -> bool:
        return self._pending_input is not None and not self._pending_input.done()

    async def run(
        self,
        prompt: str,
        system_prompt: str,
        tools: Optional[List[ToolDefinition]] = None,
        history: Optional[List[Message]] = None,
        expects_json: bool = True,
        on_final: Optional[Callable[[str], Any]] = None,
        task: str = "generation",
    ) -> Optional[str]:
        """
        Run one top-level conversation.

        Args:
            prompt: Task prompt, sent as the first new user turn
            system_prompt: System instructions for every round
            tools: Tool definitions; defaults to the dispatcher's tools
            history: Prior conversation to seed before the prompt
            expects_json: False for free-text replies (no question detection)
            on_final: Called with the final text before status becomes
                complete; errors it raises fail the call
            task: Label for tracing

        Returns:
            Final text, or None if cancelled

        Raises:
            AgentError: transport, model, round budget or parse failures
        """
        if self._task is not None and not self._task.done():
            raise RuntimeError("AgentLoop is already running")

        self._total_tokens = 0
        self._rounds_used = 0
        self._system_prompt = system_prompt
        self._tools = tools if tools is not None else self.dispatcher.definitions()
        self._expects_json = expects_json
        self._set_status(GenerationStatus.starting())

        initial: LoopState = {
            "messages": list(history or []) + [Message.user(prompt)],
            "round": 0,
            "truncated_text": "",
            "final_text": None,
            "cancelled": False,
        }

        with decision_logger.trace(task, self.model or self.adapter.model) as trace:
            self._trace = trace
            try:
                final_state = await self._invoke_graph(initial)
                if final_state.get("cancelled"):
                    trace.log_cancelled()
                    self._set_status(GenerationStatus.cancelled())
                    return None

                text = final_state.get("final_text") or ""
                self._set_status(GenerationStatus.parsing())
                if on_final is not None:
                    on_final(text)
            except MaxRoundsExceededError:
                self._set_status(GenerationStatus.failed(MAX_ROUNDS_REASON))
                raise
            except AgentError as e:
                self._set_status(GenerationStatus.failed(e.message))
                raise
            except Exception as e:
                self._set_status(GenerationStatus.failed(str(e)))
                raise
            finally:
                self._trace = None

            trace.log_response(len(text), self._total_tokens)
            self._set_status(GenerationStatus.complete())
            return text

    def submit_user_response(self, text: str) -> None:
        """
        Answer the pending clarifying question.

        An empty answer is treated like cancel_pending_input().

        Raises:
            InputNotPendingError: no question is waiting
        """
        if not self.is_waiting_for_input:
            raise InputNotPendingError("No clarifying question is pending")
        self._pending_input.set_result(text)

    def cancel_pending_input(self) -> None:
        """
        Decline the pending question; the model is told to proceed.

        Raises:
            InputNotPendingError: no question is waiting
        """
        if not self.is_waiting_for_input:
            raise InputNotPendingError("No clarifying question is pending")
        self._pending_input.set_result(None)

    def cancel(self) -> None:
        """
        Stop the current call; run() returns None.

        A cancel issued before the first run() applies to that run. Once a
        call has finished, cancel() is a no-op until the next run() starts.
        """
        running = self._task is not None and not self._task.done()
        if not running and self._status.is_terminal:
            logger.debug("Ignoring cancel with no call in progress", status=self._status.kind.value)
            return
        self._cancel_requested = True
        if running:
            self._task.cancel()

    # ========================================
    # Graph
    # ========================================

    def _build_graph(self) -> Any:
        """
        Build the loop graph.

        Graph structure:
        send -> [execute_tools | continue_truncated | final_turn] -> send ... -> END
        """
        graph = StateGraph(LoopState)

        graph.add_node("send", self._send_node)
        graph.add_node("execute_tools", self._execute_tools_node)
        graph.add_node("continue_truncated", self._continue_truncated_node)
        graph.add_node("final_turn", self._final_turn_node)

        graph.set_entry_point("send")

        graph.add_conditional_edges(
            "send",
            self._route_after_send,
            {
                "tools": "execute_tools",
                "continue": "continue_truncated",
                "final": "final_turn",
                "end": END,
            }
        )
        graph.add_conditional_edges(
            "execute_tools",
            self._route_to_next_round,
            {"send": "send", "end": END},
        )
        graph.add_edge("continue_truncated", "send")
        graph.add_conditional_edges(
            "final_turn",
            self._route_after_final,
            {"send": "send", "end": END},
        )

        return graph.compile()

    async def _invoke_graph(self, initial: LoopState) -> LoopState:
        # Each round takes at most two steps, plus the step that hits the budget.
        config = {"recursion_limit": self.max_rounds * 3 + 5}
        self._task = asyncio.ensure_future(self._graph.ainvoke(initial, config=config))
        try:
            return await self._task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            return {"cancelled": True}
        finally:
            self._task = None
            self._cancel_requested = False

    # ========================================
    # Graph Nodes
    # ========================================

    async def _send_node(self, state: LoopState) -> LoopState:
        """Send the conversation and record the model's turn."""
        if self._cancel_requested:
            return {"cancelled": True}

        round_number = state.get("round", 0)
        if round_number >= self.max_rounds:
            logger.warning("Agent loop exceeded round budget", max_rounds=self.max_rounds)
            raise MaxRoundsExceededError(self.max_rounds)

        messages = state.get("messages", [])
        self._set_status(GenerationStatus.sending())
        if self._trace:
            self._trace.log_round(round_number + 1, len(messages))

        response = await self.adapter.send(messages, self._system_prompt, self._tools, self.model)
        if response.usage is not None:
            self._total_tokens += response.usage.total
        self._rounds_used = round_number + 1

        return {
            "messages": messages + [response.message],
            "round": round_number + 1,
            "response": response,
        }

    async def _execute_tools_node(self, state: LoopState) -> LoopState:
        """Run every tool call of the turn and append results in call order."""
        response: ModelResponse = state["response"]
        calls = response.message.tool_calls

        for call in calls:
            self._set_status(GenerationStatus.executing_tool(call.name))

        results = await self.dispatcher.execute_all(calls)

        if self._trace:
            for call, result in zip(calls, results):
                self._trace.log_tool_call(
                    call.name,
                    success=not result.is_error,
                    result_summary=self._summarize_tool_result(result.result),
                )

        if self._cancel_requested:
            return {"cancelled": True}

        return {
            "messages": state["messages"] + [Message.tool_result(r) for r in results],
        }

    async def _continue_truncated_node(self, state: LoopState) -> LoopState:
        """Keep the partial text and ask the model to carry on."""
        response: ModelResponse = state["response"]
        partial = response.message.content
        truncated = state.get("truncated_text", "") + partial

        if self._trace:
            self._trace.log_continuation(len(partial))

        return {
            "truncated_text": truncated,
            "messages": state["messages"] + [Message.user(CONTINUE_TRUNCATED_PROMPT)],
        }

    async def _final_turn_node(self, state: LoopState) -> LoopState:
        """
        Decide whether the final turn ends the call.

        JSON (or any text when JSON is not expected) ends it. Empty text is
        nudged. Anything else is a clarifying question for the caller.
        """
        response: ModelResponse = state["response"]
        text = state.get("truncated_text", "") + response.message.content
        messages = state["messages"]

        if not self._expects_json or self._looks_like_json(text):
            return {"final_text": text, "truncated_text": ""}

        if not text.strip():
            if self._trace:
                self._trace.log_empty_response()
            # Providers reject an assistant turn with no content.
            return {
                "truncated_text": "",
                "messages": messages[:-1] + [Message.user(EMPTY_RESPONSE_PROMPT)],
            }

        answer = await self._wait_for_input(text)
        if self._trace:
            self._trace.log_user_response(bool(answer))

        follow_up = answer if answer else NO_FOLLOW_UP_DIRECTIVE
        return {
            "truncated_text": "",
            "messages": messages + [Message.user(follow_up)],
        }

    # ========================================
    # Conditional Edge Functions
    # ========================================

    def _route_after_send(self, state: LoopState) -> str:
        if state.get("cancelled"):
            return "end"
        response: ModelResponse = state["response"]
        if response.message.tool_calls:
            return "tools"
        if response.stop_reason == StopReason.MAX_TOKENS:
            return "continue"
        return "final"

    def _route_to_next_round(self, state: LoopState) -> str:
        return "end" if state.get("cancelled") else "send"

    def _route_after_final(self, state: LoopState) -> str:
        return "end" if state.get("final_text") is not None else "send"

    # ========================================
    # Helpers
    # ========================================

    def _looks_like_json(self, text: str) -> bool:
        stripped = text.strip()
        if stripped.startswith("{") or stripped.startswith("```"):
            return True
        return self.parser.looks_like_json(text)

    async def _wait_for_input(self, question: str) -> Optional[str]:
        """Suspend until the caller answers or declines the question."""
        self._pending_input = asyncio.get_running_loop().create_future()
        if self._trace:
            self._trace.log_question(question)
        self._set_status(GenerationStatus.waiting_for_input(question))
        try:
            return await self._pending_input
        finally:
            self._pending_input = None

    def _set_status(self, status: GenerationStatus) -> None:
        self._status = status
        logger.debug("Generation status", status=status.kind.value, detail=status.detail)
        if self.on_status is not None:
            self.on_status(status)

    @staticmethod
    def _summarize_tool_result(result: dict[str, Any]) -> str:
        if "error" in result:
            return f"Error: {str(result['error'])[:80]}"
        keys = list(result.keys())[:3]
        return f"Dict with keys: {keys}"
