# autodev

Building blocks for an autonomous development pipeline:

- `autodev.decompose` turns a free-text task into ordered subtasks. It can validate, merge and summarise them, and it can pull file paths out of the task text.
- `autodev.progress` tracks pipeline phases. It counts tokens, records errors and warnings, renders text reports and draws simple progress bars.
- `autodev.project` inspects a project directory and builds a profile. The profile covers language, framework, project type, build, test and dev commands, dependencies, and whether tests, CI, Docker, linting and formatting are present.
- `autodev.router` scores registered agent profiles against a task with keyword, role and priority strategies. It picks the best agent for the task.
- `autodev.sandbox` runs commands under a policy. The policy allows or blocks commands and sets time limits, output limits and path checks.

## Installation

```
pip install .
```

## Usage

```python
from autodev.decompose import decompose, summarize_task_plan
from autodev.progress import Tracker
from autodev.project import Analyzer
from autodev.router import Router, AgentProfile
from autodev.sandbox import Executor, default_policy

plan = decompose("Add user authentication with OAuth2")
print(summarize_task_plan(plan))

tracker = Tracker("task-1", "Add authentication")
tracker.register_phase("parse", "Parse input")
tracker.start_phase("parse")
tracker.complete_phase("parse", 120)
print(tracker.summary())

profile = Analyzer(".").analyze()
print(profile.summary())

router = Router()
router.register(AgentProfile(name="developer", keywords=["implement"], priority=10))
print(router.route("implement a new feature").agent_name)

sandbox = Executor(default_policy(), "/tmp/autodev-sandbox")
result = sandbox.run("echo", "hello")
print(result.stdout, result.success())
```

## Running the tests

```
pip install .[test]
pytest
```