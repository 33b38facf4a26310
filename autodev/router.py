"""Selection of the best-suited agent for a task by combining scoring strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional


class RoutingError(ValueError):
    """Raised when an agent cannot be registered, found or routed to."""


@dataclass
class Route:
    """A routing decision with its confidence and the strategies that backed it."""

    agent_name: str
    confidence: float = 0.0
    reason: str = ""


@dataclass
class AgentProfile:
    """An agent's capabilities as seen by the router."""

    name: str
    roles: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    executor: Any = None
    priority: int = 0
    max_tokens: int = 0
    can_use_tools: bool = False


class RoutingStrategy(ABC):
    """Scores how well an agent profile matches a task."""

    name: str = ""

    @abstractmethod
    def score(self, task: str, profile: AgentProfile) -> float:
        """Return a score for the profile against the task."""


class KeywordStrategy(RoutingStrategy):
    """Scores the share of the profile's keywords found in the task."""

    name = "keyword"

    def score(self, task: str, profile: AgentProfile) -> float:
        if not profile.keywords:
            return 0.3
        lowered = task.lower()
        words = lowered.split()
        matches = 0
        for keyword in profile.keywords:
            kw = keyword.lower()
            if kw in lowered or any(kw in word or word in kw for word in words):
                matches += 1
        return matches / len(profile.keywords)


class RoleStrategy(RoutingStrategy):
    """Scores the share of the profile's roles named in the task."""

    name = "role"

    def score(self, task: str, profile: AgentProfile) -> float:
        if not profile.roles:
            return 0.2
        lowered = task.lower()
        matches = sum(1 for role in profile.roles if role.lower() in lowered)
        return matches / len(profile.roles)


class PriorityStrategy(RoutingStrategy):
    """Scores the profile's priority on a scale where 10 is 1.0."""

    name = "priority"

    def score(self, task: str, profile: AgentProfile) -> float:
        if profile.priority <= 0:
            return 0.1
        return profile.priority / 10.0


class Router:
    """Chooses the best agent for a task among the registered profiles."""

    def __init__(self, strategies: Optional[Iterable[RoutingStrategy]] = None) -> None:
        self._agents: dict[str, AgentProfile] = {}
        self.strategies: list[RoutingStrategy] = (
            list(strategies)
            if strategies is not None
            else [KeywordStrategy(), RoleStrategy(), PriorityStrategy()]
        )

    def register(self, profile: AgentProfile) -> None:
        """Add an agent to the routing table."""
        if not profile.name:
            raise RoutingError("agent name cannot be empty")
        if profile.name in self._agents:
            raise RoutingError(f'agent "{profile.name}" already registered')
        self._agents[profile.name] = profile

    def _score(self, task: str, profile: AgentProfile, threshold: float) -> tuple[float, str]:
        total = 0.0
        parts = []
        for strategy in self.strategies:
            value = strategy.score(task, profile)
            total += value
            if value > threshold:
                parts.append(f"{strategy.name}:{value:.2f}")
        return total, ", ".join(parts)

    def route(self, task: str) -> Route:
        """Return the best matching agent for the task."""
        if not self._agents:
            raise RoutingError("no agents registered")
        scored = [
            (name, *self._score(task, profile, 0.2))
            for name, profile in self._agents.items()
        ]
        name, total, reason = max(scored, key=lambda item: item[1])
        return Route(
            agent_name=name,
            confidence=total / len(self.strategies),
            reason=reason,
        )

    def route_all(self, task: str) -> list[Route]:
        """Return every agent, best suited first."""
        if not self._agents:
            raise RoutingError("no agents registered")
        scored = []
        for name, profile in self._agents.items():
            total, reason = self._score(task, profile, 0.1)
            scored.append(
                (total, Route(agent_name=name, confidence=total / len(self.strategies), reason=reason))
            )
        scored.sort(key=lambda item: item[0], reverse=True)
        return [route for _, route in scored]

    def get_executor(self, name: str) -> Any:
        """Return the executor of the named agent, which may be None."""
        try:
            return self._agents[name].executor
        except KeyError:
            raise RoutingError(f'agent "{name}" not found') from None

    def list_agents(self) -> list[str]:
        """Return the registered agent names in alphabetical order."""
        return sorted(self._agents)


def register_builtin(router: Router, parser: Any, developer: Any, tester: Any, checker: Any) -> None:
    """Register the standard pipeline agents whose executors are given."""
    builtins = [
        AgentProfile(
            name="parser",
            roles=["parser", "analyst", "requirements"],
            keywords=["analyze", "parse", "understand", "requirements", "spec",
                      "design", "plan", "investigate"],
            executor=parser,
            priority=8,
            can_use_tools=True,
        ),
        AgentProfile(
            name="developer",
            roles=["developer", "engineer", "coder"],
            keywords=["implement", "create", "write", "code", "develop", "build", "add",
                      "feature", "function", "method", "class", "component"],
            executor=developer,
            priority=10,
            can_use_tools=True,
        ),
        AgentProfile(
            name="tester",
            roles=["tester", "qa", "quality"],
            keywords=["test", "verify", "validate", "check", "unit", "integration",
                      "coverage", "assert", "bug", "fail", "error"],
            executor=tester,
            priority=7,
            can_use_tools=True,
        ),
        AgentProfile(
            name="reviewer",
            roles=["reviewer", "auditor", "inspector"],
            keywords=["review", "audit", "inspect", "lint", "quality", "standard",
                      "refactor", "improve", "optimize", "clean"],
            executor=checker,
            priority=6,
            can_use_tools=True,
        ),
    ]
    for profile in builtins:
        if profile.executor is None:
            continue
        try:
            router.register(profile)
        except RoutingError as exc:
            raise RoutingError(f"failed to register agent {profile.name}: {exc}") from exc