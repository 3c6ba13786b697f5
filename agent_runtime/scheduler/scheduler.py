"""Autonomous loop: observe, reason, plan, act, reflect, with healing on failure."""

import asyncio
import json
import time
from typing import Any, Awaitable, Protocol

from ..capabilities import CapabilityRegistry
from ..config import Settings
from ..errors import AgentNotFoundError, StepTimeoutError
from ..guards import Guards, estimate_action_cost, llm_cost
from ..healing import SelfHealingEngine
from ..llm import ILLMProvider, chat_or_none
from ..logging_config import get_logger
from ..memory import MemoryStore, estimate_tokens, prune_agent_memories
from ..message_bus import IMessageBus
from ..models import (
    ActionType,
    AgentLifecycle,
    ApprovalKind,
    AutonomyMode,
    ExecutionEventType,
    PlannedAction,
    ThinkingStepType,
)
from ..runtime_state import AgentRuntimeState
from ..storage import IStorage
from ..tracker import ITracker
from ..workflow import IWorkflowEngine
from .prompts import (
    MEMORY_TOKEN_BUDGET,
    build_plan_prompt,
    build_reason_prompt,
    build_system_prompt,
    parse_plan,
)

logger = get_logger(__name__)

HANDOFF_TOPIC = "coordination.handoff"
HEALING_TOPIC = "healing.report"
NO_REASONING = "No reasoning available; LLM may be in demo mode."
MAX_APPROVAL_DESCRIPTION = 500


class CancellationToken:
    """Cooperative stop signal shared by one agent loop and its owner."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds. Returns True if cancelled meanwhile."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True


class IAutonomousScheduler(Protocol):
    async def start(self, agent_id: str, interval: float | None = None) -> bool:
        """Start the agent's loop unless one is already running."""
        ...

    async def stop(self, agent_id: str) -> bool:
        """Signal the loop to stop and wait for it to exit."""
        ...

    def is_running(self, agent_id: str) -> bool:
        ...

    async def run_cycle(self, agent_id: str) -> bool:
        """Run one full cycle. Returns False if the cycle needed healing."""
        ...


class AutonomousScheduler:
    """
    Drives one asyncio task per running agent.

    Each cycle runs five phases under the step timeout and records a thinking
    step per phase. Any exception in a cycle is routed through self-healing
    and the agent returns to ``waiting``. Consecutive failures back off
    exponentially; too many of them pause the agent and end its loop.
    """

    def __init__(
        self,
        runtime_state: AgentRuntimeState,
        message_bus: IMessageBus,
        memory: MemoryStore,
        registry: CapabilityRegistry,
        guards: Guards,
        healer: SelfHealingEngine,
        workflow_engine: IWorkflowEngine | None = None,
        llm: ILLMProvider | None = None,
        tracker: ITracker | None = None,
        storage: IStorage | None = None,
        settings: Settings | None = None,
    ):
        self._state = runtime_state
        self._bus = message_bus
        self._memory = memory
        self._registry = registry
        self._guards = guards
        self._healer = healer
        self._workflows = workflow_engine
        self._llm = llm
        self._tracker = tracker
        self._storage = storage
        self._settings = settings or Settings()

        self._tasks: dict[str, asyncio.Task] = {}
        self._tokens: dict[str, CancellationToken] = {}

    # Loop control

    async def start(self, agent_id: str, interval: float | None = None) -> bool:
        if self.is_running(agent_id):
            return False
        agent = self._state.get_agent(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        if agent.lifecycle == AgentLifecycle.RETIRED:
            return False
        if agent.lifecycle == AgentLifecycle.PAUSED:
            self._state.set_lifecycle(agent_id, AgentLifecycle.WAITING)

        token = CancellationToken()
        self._tokens[agent_id] = token
        self._tasks[agent_id] = asyncio.create_task(
            self._run_loop(agent_id, interval or self._settings.cycle_interval_seconds, token),
            name=f"agent-loop-{agent_id}",
        )
        logger.info("Started loop for agent %s", agent_id)
        return True

    async def stop(self, agent_id: str) -> bool:
        token = self._tokens.pop(agent_id, None)
        task = self._tasks.pop(agent_id, None)
        if task is None:
            return False
        if token is not None:
            token.cancel()

        _, pending = await asyncio.wait({task}, timeout=self._settings.stop_grace_seconds)
        if pending:
            logger.warning("Loop for agent %s did not stop in time, cancelling", agent_id)
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        self._guards.governor.release_all(agent_id)
        logger.info("Stopped loop for agent %s", agent_id)
        return True

    async def stop_all(self) -> None:
        await asyncio.gather(*[self.stop(agent_id) for agent_id in list(self._tasks)])

    def is_running(self, agent_id: str) -> bool:
        task = self._tasks.get(agent_id)
        return task is not None and not task.done()

    def running_agents(self) -> list[str]:
        return [agent_id for agent_id in self._tasks if self.is_running(agent_id)]

    async def _run_loop(self, agent_id: str, interval: float, token: CancellationToken) -> None:
        settings = self._settings
        failures = 0
        try:
            while not token.cancelled:
                agent = self._state.get_agent(agent_id)
                if agent is None or agent.lifecycle in (AgentLifecycle.RETIRED, AgentLifecycle.PAUSED):
                    break

                if await self.run_cycle(agent_id):
                    failures = 0
                else:
                    failures += 1
                    if failures >= settings.max_consecutive_failures:
                        await self._auto_pause(agent_id, failures)
                        break
                    backoff = min(
                        settings.backoff_base_seconds * 2 ** (failures - 1),
                        settings.backoff_max_seconds,
                    )
                    self._state.add_thinking_step(
                        agent_id,
                        ThinkingStepType.REFLECT,
                        f"Backing off {backoff:g}s after failure "
                        f"{failures}/{settings.max_consecutive_failures}",
                    )
                    if await token.wait(backoff):
                        break

                self._state.set_lifecycle(agent_id, AgentLifecycle.WAITING)
                if await token.wait(interval):
                    break
        finally:
            if self._tasks.get(agent_id) is asyncio.current_task():
                self._tasks.pop(agent_id, None)
                self._tokens.pop(agent_id, None)

    async def _auto_pause(self, agent_id: str, failures: int) -> None:
        self._state.set_lifecycle(agent_id, AgentLifecycle.PAUSED)
        self._state.add_thinking_step(
            agent_id,
            ThinkingStepType.REFLECT,
            f"Paused after {failures} consecutive failures, manual restart required",
        )
        logger.warning("Agent %s paused after %d consecutive failures", agent_id, failures)
        await self._track("agent_auto_paused", agent_id, {"consecutive_failures": failures})

    # Cycle

    async def run_cycle(self, agent_id: str) -> bool:
        if self._state.get_agent(agent_id) is None:
            raise AgentNotFoundError(agent_id)

        try:
            self._state.heartbeat(agent_id)
            self._state.set_lifecycle(agent_id, AgentLifecycle.THINKING)

            observations = await self._phase(agent_id, ThinkingStepType.OBSERVE, self._observe(agent_id))
            reasoning = await self._phase(
                agent_id, ThinkingStepType.REASON, self._reason(agent_id, observations)
            )
            actions = await self._phase(agent_id, ThinkingStepType.PLAN, self._plan(agent_id, reasoning))

            self._state.set_lifecycle(agent_id, AgentLifecycle.ACTING)
            result = await self._phase(agent_id, ThinkingStepType.ACT, self._act(agent_id, actions))
            await self._phase(agent_id, ThinkingStepType.REFLECT, self._reflect(agent_id, result))
            succeeded = True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Cycle failed for agent %s: %s", agent_id, e)
            await self._heal(agent_id, e)
            succeeded = False

        self._state.set_lifecycle(agent_id, AgentLifecycle.WAITING)
        await self._save_snapshot(agent_id)
        return succeeded

    async def _phase(self, agent_id: str, step: ThinkingStepType, work: Awaitable[Any]) -> Any:
        timeout = self._settings.step_timeout_seconds
        await self._track("cycle_phase_started", agent_id, {"phase": step.value})
        started = time.monotonic()
        try:
            result = await asyncio.wait_for(work, timeout)
        except asyncio.TimeoutError:
            raise StepTimeoutError(step.value, timeout) from None
        duration_ms = int((time.monotonic() - started) * 1000)

        if step == ThinkingStepType.PLAN:
            content = json.dumps([a.to_dict() for a in result])
        elif step == ThinkingStepType.REFLECT:
            content = "Cycle completed successfully"
        else:
            content = result
        self._state.add_thinking_step(agent_id, step, content, duration_ms)
        await self._track(
            "cycle_phase_completed", agent_id, {"phase": step.value, "duration_ms": duration_ms}
        )
        return result

    async def _observe(self, agent_id: str) -> str:
        prune_agent_memories(self._memory, agent_id)

        agent = self._state.get_agent(agent_id)
        if agent is None:
            return "Agent not found"

        unread = self._bus.get_unread(agent_id)
        lines = [
            f"Active goals: {len(agent.active_goals)}",
            f"Unread messages: {len(unread)}",
            f"Error count: {agent.error_count}",
        ]
        if unread:
            lines.append("Messages:")
            for message in unread[: self._settings.max_observed_messages]:
                lines.append(
                    f"  - [{message.priority.value}] {message.from_agent_id}: {message.content[:100]}"
                )
                await self._bus.acknowledge(agent_id, message.id)
        return "\n".join(lines)

    async def _reason(self, agent_id: str, observations: str) -> str:
        agent = self._state.get_agent(agent_id)
        if agent is None:
            return "Agent not found"

        system = build_system_prompt(
            agent,
            self._assigned_capabilities(agent.capability_ids),
            self._memory.get_context_window(agent_id, MEMORY_TOKEN_BUDGET),
            self._bus.get_unread(agent_id),
            self._healer.repair_log.recent(agent_id),
        )
        prompt = build_reason_prompt(observations)
        result = await chat_or_none(
            self._llm, [{"role": "user", "content": prompt}], system=system, max_tokens=512
        )
        self._record_llm_usage(agent_id, "llm:reason", system + prompt, result)
        return result or NO_REASONING

    async def _plan(self, agent_id: str, reasoning: str) -> list[PlannedAction]:
        agent = self._state.get_agent(agent_id)
        if agent is None:
            return [PlannedAction(ActionType.NONE, "Agent not found")]

        prompt = build_plan_prompt(
            reasoning,
            self._assigned_capabilities(agent.capability_ids),
            self._registry.list_tools(),
        )
        result = await chat_or_none(self._llm, [{"role": "user", "content": prompt}], max_tokens=512)
        self._record_llm_usage(agent_id, "llm:plan", prompt, result)
        return parse_plan(result, reasoning)

    async def _act(self, agent_id: str, actions: list[PlannedAction]) -> str:
        agent = self._state.get_agent(agent_id)
        if agent is None:
            return "Agent not found"
        if not actions:
            return "No actions to execute"

        if agent.autonomy_mode == AutonomyMode.FULL_AUTO:
            return await self._execute_actions(agent_id, actions)

        results: list[str] = []
        allowed: list[PlannedAction] = []
        priority = self._state.top_goal_priority(agent_id)
        for action in actions:
            preflight = self._guards.preflight(agent_id, action, priority, acquire_lock=False)
            if preflight.allowed:
                allowed.append(action)
            else:
                results.append(self._block(agent_id, action, preflight.blocking_reason))

        if allowed:
            descriptions = "; ".join(a.summary() for a in allowed)
            self._state.queue_approval(
                agent_id,
                ApprovalKind.EXECUTE_PLAN,
                descriptions[:MAX_APPROVAL_DESCRIPTION],
                allowed,
            )
            results.append("Action queued for user approval")
        return "\n".join(results)

    async def _execute_actions(self, agent_id: str, actions) -> str:
        """Preflight and run each action, holding its lock for the duration."""
        results: list[str] = []
        priority = self._state.top_goal_priority(agent_id)
        for action in actions:
            preflight = self._guards.preflight(agent_id, action, priority)
            if not preflight.allowed:
                results.append(self._block(agent_id, action, preflight.blocking_reason))
                continue

            try:
                try:
                    outcome = await self._execute(agent_id, action)
                except Exception:
                    self._guards.circuit_breaker.record_failure(action.signature)
                    raise
                self._guards.circuit_breaker.record_success(action.signature)
                tokens, cost = estimate_action_cost(action)
                if tokens or cost:
                    self._guards.budget.record_usage(agent_id, tokens, cost, action.signature)
                results.append(outcome)
            finally:
                self._guards.governor.release(action.resource, agent_id)
        return "\n".join(results)

    def _block(self, agent_id: str, action: PlannedAction, reason: str | None) -> str:
        self._state.queue_approval(
            agent_id,
            ApprovalKind.PREFLIGHT_BLOCKED,
            f"Blocked: {reason} - {action.summary()}",
            [action],
        )
        logger.info("Agent %s action blocked: %s", agent_id, reason)
        return f"BLOCKED: {reason}"

    async def _execute(self, agent_id: str, action: PlannedAction) -> str:
        if action.type == ActionType.CONNECTOR:
            if not (action.connector_id and action.action_id):
                return "Connector action skipped: missing connectorId or actionId"
            result = await self._registry.execute_with_fallback(
                action.connector_id, action.action_id, action.params
            )
            return f"Connector({action.connector_id}/{action.action_id}): {_summarize(result)}"

        if action.type == ActionType.TOOL:
            if not action.tool_name:
                return "Tool action skipped: missing toolName"
            result = await self._registry.execute_tool(
                action.tool_name, {"agent_id": agent_id, **action.params}
            )
            return f"Tool({action.tool_name}): {_summarize(result)}"

        if action.type == ActionType.WORKFLOW:
            if not action.workflow_id:
                return "Workflow action skipped: missing workflowId"
            if self._workflows is None:
                return f"Workflow({action.workflow_id}): no workflow engine configured"
            events = await self._workflows.run(action.workflow_id, action.params or None)
            errors = sum(1 for e in events if e.type == ExecutionEventType.ERROR)
            return f"Workflow({action.workflow_id}): {len(events)} events, {errors} error(s)"

        if action.type == ActionType.MESSAGE:
            topic = action.topic
            await self._bus.publish(agent_id, topic, action.description)
            return f"Message({topic}): published"

        return f"No-op: {action.description}"

    async def _reflect(self, agent_id: str, result: str) -> None:
        if result and result != "Agent not found":
            self._memory.remember(
                agent_id,
                result[:500],
                "workflows",
                f"Cycle result: {self._memory.now().isoformat()}",
            )
        await self._bus.publish(agent_id, HANDOFF_TOPIC, f"Agent completed cycle: {result[:200]}")

    async def _heal(self, agent_id: str, error: Exception) -> None:
        self._state.set_lifecycle(agent_id, AgentLifecycle.HEALING)
        self._state.increment_error_count(agent_id)
        await self._track("agent_error", agent_id, {"kind": "cycle_error", "error": str(error)})

        agent = self._state.get_agent(agent_id)
        context = f"Agent: {agent.name}, Goals: {len(agent.goal_stack)}" if agent else ""
        record = await self._healer.heal(error, agent_id, context)
        if self._storage:
            await self._storage.save_repair(record)

        await self._bus.publish(
            agent_id,
            HEALING_TOPIC,
            f"Self-healing {record.status.value}: {record.error_type.value} - {record.repair_action[:200]}",
        )
        self._state.add_thinking_step(
            agent_id,
            ThinkingStepType.REFLECT,
            f"Self-healing {record.status.value}: {record.error_message[:200]}",
        )

    # Approvals

    async def execute_approval(self, approval_id: str) -> str | None:
        """Run an approved batch through the guarded executor. None if unknown."""
        approval = self._state.approve_action(approval_id)
        if approval is None:
            return None
        agent_id = approval.agent_id
        if self._state.get_agent(agent_id) is None:
            raise AgentNotFoundError(agent_id)

        self._state.set_lifecycle(agent_id, AgentLifecycle.ACTING)
        try:
            result = await self._execute_actions(agent_id, approval.actions)
        except Exception as e:
            logger.warning("Approved actions failed for agent %s: %s", agent_id, e)
            await self._heal(agent_id, e)
            result = f"Execution failed: {e}"
        self._state.add_thinking_step(agent_id, ThinkingStepType.ACT, result)
        self._state.set_lifecycle(agent_id, AgentLifecycle.WAITING)
        await self._save_snapshot(agent_id)
        return result

    # Helpers

    def _assigned_capabilities(self, capability_ids):
        return [c for c in (self._registry.get(cid) for cid in capability_ids) if c is not None]

    def _record_llm_usage(self, agent_id: str, source: str, prompt: str, result: str | None) -> None:
        input_tokens = estimate_tokens(prompt)
        output_tokens = estimate_tokens(result) if result else 0
        self._guards.budget.record_usage(
            agent_id, input_tokens + output_tokens, llm_cost(input_tokens, output_tokens), source
        )

    async def _track(self, event_type: str, agent_id: str, data: dict) -> None:
        if self._tracker:
            await self._tracker.track(event_type, f"agent:{agent_id}", data)

    async def _save_snapshot(self, agent_id: str) -> None:
        agent = self._state.get_agent(agent_id)
        if self._storage and agent is not None:
            await self._storage.save_agent_snapshot(agent)


def _summarize(result: Any) -> str:
    text = result if isinstance(result, str) else json.dumps(result, default=str)
    return text[:200]
