"""Application bootstrap: builds and owns every runtime component."""

from typing import Protocol

from .capabilities import (
    CapabilityRegistry,
    HttpConnectorAdapter,
    Notifier,
    default_capabilities,
    register_builtin_tools,
)
from .config import Settings, resolve_db_path
from .guards import Guards
from .healing import SelfHealingEngine
from .llm import HttpChatClient, ILLMProvider, LLMProvider
from .logging_config import get_logger
from .memory import MemoryStore
from .message_bus import MessageBus
from .models import AutonomyMode
from .models.workflows import AgentAutonomousData
from .runtime_state import AgentRuntimeState
from .scheduler import AutonomousScheduler
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .workflow import NodeExecutor, WorkflowEngine, WorkflowRepository

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Stop agent loops and shut down in reverse order."""
        ...

    async def reset(self) -> None:
        """Stop every loop and clear all runtime and stored state."""
        ...


class Application:
    """
    The runtime context.

    Every component is created here and handed its collaborators explicitly,
    so several applications can run side by side in one process (tests do).
    """

    def __init__(
        self,
        db_path: str | None = None,
        settings: Settings | None = None,
        llm: ILLMProvider | None = None,
    ):
        self._settings = settings or Settings.from_env()
        self._db_path = resolve_db_path(db_path if db_path is not None else self._settings.database_url)
        self._llm_override = llm

        # Components (initialized in start())
        self._storage: IStorage | None = None
        self._message_bus: MessageBus | None = None
        self._tracker: ITracker | None = None
        self._llm: ILLMProvider | None = None
        self._memory: MemoryStore | None = None
        self._registry: CapabilityRegistry | None = None
        self._notifier: Notifier | None = None
        self._guards: Guards | None = None
        self._runtime_state: AgentRuntimeState | None = None
        self._healer: SelfHealingEngine | None = None
        self._workflows: WorkflowRepository | None = None
        self._workflow_engine: WorkflowEngine | None = None
        self._scheduler: AutonomousScheduler | None = None
        self._connector_adapter: HttpConnectorAdapter | None = None
        self._started = False

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        settings = self._settings

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. MessageBus (persists through Storage)
        self._message_bus = MessageBus(self._storage)

        # 3. Tracker (MessageBus + Storage)
        self._tracker = Tracker(self._message_bus, self._storage)
        await self._tracker.start()

        # 4. Language model
        self._llm = self._llm_override or self._create_llm()

        # 5. Memory and capabilities
        self._memory = MemoryStore()
        self._registry = CapabilityRegistry(default_capabilities(), demo_mode=settings.demo_mode)
        self._notifier = Notifier()
        register_builtin_tools(self._registry, self._memory, self._message_bus, self._notifier)
        if settings.llm_backend == "http":
            self._connector_adapter = HttpConnectorAdapter(settings.llm_base_url)
            self._registry.set_default_adapter(self._connector_adapter)

        # 6. Guards, agent state, self-healing
        self._guards = Guards()
        self._runtime_state = AgentRuntimeState()
        self._healer = SelfHealingEngine(self._registry, self._llm)

        # 7. Workflows (agent_autonomous nodes deploy through the runtime state)
        self._workflows = WorkflowRepository(self._storage)
        executor = NodeExecutor(self._registry, self._llm, agent_deployer=self._deploy_from_workflow)
        self._workflow_engine = WorkflowEngine(executor, self._workflows)

        # 8. Scheduler (everything above)
        self._scheduler = AutonomousScheduler(
            runtime_state=self._runtime_state,
            message_bus=self._message_bus,
            memory=self._memory,
            registry=self._registry,
            guards=self._guards,
            healer=self._healer,
            workflow_engine=self._workflow_engine,
            llm=self._llm,
            tracker=self._tracker,
            storage=self._storage,
            settings=settings,
        )
        self._started = True
        logger.info("All components initialized successfully")

    def _create_llm(self) -> ILLMProvider | None:
        settings = self._settings
        if settings.llm_backend == "none":
            logger.info("LLM disabled; agents run without reasoning")
            return None
        if settings.llm_backend == "http":
            logger.info("Using HTTP chat backend at %s", settings.llm_base_url)
            return HttpChatClient(settings.llm_base_url, settings.llm_provider, settings.llm_model)
        if not settings.anthropic_api_key:
            logger.warning("ANTHROPIC_API_KEY not set; agents run without reasoning")
            return None
        return LLMProvider(api_key=settings.anthropic_api_key, model=settings.llm_model)

    async def _deploy_from_workflow(self, data: AgentAutonomousData) -> str | None:
        agent_id = self.runtime_state.deploy(
            data.agent_name or "Workflow Agent",
            data.task,
            AutonomyMode(data.autonomy_mode),
            data.capability_ids,
        )
        await self.scheduler.start(agent_id)
        return agent_id

    async def stop(self) -> None:
        """Stop agent loops and shut down in reverse order."""
        if self._scheduler:
            await self._scheduler.stop_all()
        if isinstance(self._llm, HttpChatClient):
            await self._llm.close()
        if self._connector_adapter:
            await self._connector_adapter.close()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")
        self._started = False

    async def reset(self) -> None:
        """Stop every loop and clear all runtime and stored state."""
        if self._scheduler:
            await self._scheduler.stop_all()
        if self._runtime_state:
            self._runtime_state.reset()
        if self._message_bus:
            self._message_bus.reset()
        if self._memory:
            self._memory.reset()
        if self._registry:
            self._registry.reset()
        if self._guards:
            self._guards.reset()
        if self._healer:
            self._healer.repair_log.reset()
        if self._workflows:
            self._workflows.reset()
        if self._notifier:
            self._notifier.notifications.clear()
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")
        logger.info("Reset complete")

    async def retire_agent(self, agent_id: str, purge: bool = False) -> None:
        """
        Stop the agent's loop, release its locks and mark it retired.

        With ``purge`` the retired record, its approvals and its snapshot are
        then removed.
        """
        await self.scheduler.stop(agent_id)
        self.guards.governor.release_all(agent_id)
        self.message_bus.unsubscribe_all(agent_id)
        self.runtime_state.retire(agent_id)
        if purge:
            self.runtime_state.remove(agent_id)
            await self.storage.delete_agent_snapshot(agent_id)
            logger.info("Agent %s retired and removed", agent_id)
            return
        agent = self.runtime_state.get_agent(agent_id)
        if agent is not None:
            await self.storage.save_agent_snapshot(agent)

    def _require(self, component):
        if not self._started or component is None:
            raise RuntimeError("Application not started")
        return component

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def storage(self) -> IStorage:
        return self._require(self._storage)

    @property
    def message_bus(self) -> MessageBus:
        return self._require(self._message_bus)

    @property
    def tracker(self) -> ITracker:
        return self._require(self._tracker)

    @property
    def llm(self) -> ILLMProvider | None:
        self._require(self._registry)
        return self._llm

    @property
    def memory(self) -> MemoryStore:
        return self._require(self._memory)

    @property
    def registry(self) -> CapabilityRegistry:
        return self._require(self._registry)

    @property
    def notifier(self) -> Notifier:
        return self._require(self._notifier)

    @property
    def guards(self) -> Guards:
        return self._require(self._guards)

    @property
    def runtime_state(self) -> AgentRuntimeState:
        return self._require(self._runtime_state)

    @property
    def healer(self) -> SelfHealingEngine:
        return self._require(self._healer)

    @property
    def workflows(self) -> WorkflowRepository:
        return self._require(self._workflows)

    @property
    def workflow_engine(self) -> WorkflowEngine:
        return self._require(self._workflow_engine)

    @property
    def scheduler(self) -> AutonomousScheduler:
        return self._require(self._scheduler)
