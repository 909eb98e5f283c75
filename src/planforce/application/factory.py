"""
Application Layer - Planner Factory

Wires the planner from settings:
settings -> logging -> gateway -> registry -> nodes -> orchestrator ->
executor -> agent.

Domain capabilities (swap, bridge, balance lookups, ...) are passed in by
the host as Tool instances and registered next to the built-in planner
capabilities before the registry is frozen.
"""

from pathlib import Path

import structlog

from planforce.application.executor import LLMTaskExecutor
from planforce.application.runner import PlanningAgent
from planforce.config import PlannerSettings, configure_logging
from planforce.core.interfaces.human import HumanChannelProtocol
from planforce.core.interfaces.llm import InferenceGatewayProtocol
from planforce.core.planning.answer import AnswerSynthesizer
from planforce.core.planning.compiler import PlanCompiler
from planforce.core.planning.orchestrator import PlannerOrchestrator
from planforce.core.planning.reconciler import PlanReconciler
from planforce.core.planning.selector import TaskSelector
from planforce.core.planning.termination import TerminationPolicy
from planforce.core.prompts.planner_prompts import PlannerPrompts
from planforce.core.registry import CapabilityRegistry
from planforce.core.review import ReviewGate
from planforce.core.tools.ask_user_tool import AskUserTool
from planforce.core.tools.base import Tool
from planforce.core.tools.planner_tools import planner_tools
from planforce.infrastructure.llm.litellm_gateway import LiteLLMGateway


class PlannerFactory:
    def __init__(self, settings: PlannerSettings | None = None):
        self.settings = settings or PlannerSettings()
        self.logger = structlog.get_logger().bind(component="planner_factory")

    @classmethod
    def from_file(cls, config_path: Path) -> "PlannerFactory":
        return cls(PlannerSettings.load_from_file(config_path))

    def create_gateway(self) -> LiteLLMGateway:
        return LiteLLMGateway(config_path=self.settings.llm_config_path)

    def create_registry(
        self,
        tools: list[Tool] | None = None,
        channel: HumanChannelProtocol | None = None,
    ) -> CapabilityRegistry:
        """
        Build a registry with the planner capabilities, ``ask_user`` and ``tools``.

        Raises:
            DuplicateCapabilityError: If a domain tool reuses a registered name
        """
        registry = CapabilityRegistry(review_gate=ReviewGate(self.settings.approval_policy, channel))
        for tool in planner_tools():
            registry.register_tool(tool)
        registry.register_tool(AskUserTool(channel))
        for tool in tools or []:
            registry.register_tool(tool)
        return registry

    def create_orchestrator(
        self,
        gateway: InferenceGatewayProtocol,
        registry: CapabilityRegistry,
        prompts: PlannerPrompts | None = None,
    ) -> PlannerOrchestrator:
        prompts = prompts or PlannerPrompts()
        settings = self.settings
        return PlannerOrchestrator(
            registry=registry,
            compiler=PlanCompiler(
                gateway,
                registry,
                prompts=prompts,
                model=settings.planner_model,
                history_window=settings.chat_history_window,
            ),
            reconciler=PlanReconciler(gateway, registry, prompts=prompts, model=settings.planner_model),
            selector=TaskSelector(
                gateway,
                registry,
                policy=TerminationPolicy(settings.retry_ceiling),
                prompts=prompts,
                model=settings.planner_model,
            ),
            answerer=AnswerSynthesizer(
                gateway,
                prompts=prompts,
                model=settings.answer_model,
                history_window=settings.chat_history_window,
            ),
        )

    def create_agent(
        self,
        tools: list[Tool] | None = None,
        channel: HumanChannelProtocol | None = None,
        gateway: InferenceGatewayProtocol | None = None,
        prompts: PlannerPrompts | None = None,
    ) -> PlanningAgent:
        """
        Create a fully wired PlanningAgent.

        Args:
            tools: Domain capabilities exposed to the executor
            channel: Human channel for reviews and ask_user
            gateway: Inference gateway override (defaults to LiteLLMGateway)
            prompts: Planner prompt overrides

        Returns:
            PlanningAgent ready to run requests
        """
        configure_logging(self.settings.log_level)
        gateway = gateway or self.create_gateway()
        registry = self.create_registry(tools, channel)
        orchestrator = self.create_orchestrator(gateway, registry, prompts)
        executor = LLMTaskExecutor(
            gateway,
            registry,
            model=self.settings.executor_model,
            max_steps=self.settings.executor_max_steps,
        )

        self.logger.info(
            "creating_agent",
            capabilities=[entry["name"] for entry in registry.list()],
            retry_ceiling=self.settings.retry_ceiling,
            approval_policy=self.settings.approval_policy.value,
        )
        return PlanningAgent(orchestrator, executor, max_turns=self.settings.max_turns)
