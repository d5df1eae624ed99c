"""Shared fixtures: Java sources, a fake chromadb client and a fake embedding service."""

import json

import httpx
import pytest
from chromadb.errors import NotFoundError

USER_CONTROLLER = """package com.example.web;

import org.springframework.web.bind.annotation.GetMapping;
import org.springframework.web.bind.annotation.RestController;
import java.util.List;

@RestController
public class UserController {

    @Autowired
    private UserService userService;

    @GetMapping("/users")
    public List<User> listUsers() {
        return userService.findAll();
    }

    public User findById(Long id) {
        return userService.findById(id);
    }
}
"""

USER_SERVICE = """package com.example.service;

import org.springframework.stereotype.Service;

@Service
public class UserService {
    public List<User> findAll() {
        return List.of();
    }
}
"""

USER_REPOSITORY = """package com.example.repo;

public interface UserRepository extends JpaRepository<User, Long> {
    User findByEmail(String email);
}
"""


def large_controller(padding: int = 3600) -> str:
    """A controller over 3000 chars with a route, a finder and an accessor, and no fields."""
    filler = "\n".join(f"    // filler line {i:04d} " + "x" * 60 for i in range(padding // 80))
    return f"""package com.example.web;

import org.springframework.web.bind.annotation.GetMapping;

@RestController
public class OrderController {{
{filler}

    @GetMapping("/orders")
    public List<Order> listOrders() {{
        return List.of();
    }}

    public Order findById(Long id) {{
        return null;
    }}

    public String getName() {{
        return "orders";
    }}
}}
"""


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records delays and returns at once."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


class FakeCollection:
    """In-memory stand-in for chromadb's AsyncCollection."""

    def __init__(self, owner: "FakeChroma", name: str, metadata: dict | None):
        self.owner = owner
        self.id = f"id-{name}"
        self.name = name
        self.metadata = metadata
        self.records: dict[str, dict] = {}

    async def add(self, **kwargs):
        self._write("add", kwargs)

    async def upsert(self, **kwargs):
        self._write("upsert", kwargs)

    def _write(self, op: str, kwargs: dict) -> None:
        self.owner.calls.append((op, kwargs))
        self.owner.add_calls += 1
        if self.owner.add_calls in self.owner.fail_add_calls:
            raise RuntimeError("boom")
        for i, record_id in enumerate(kwargs["ids"]):
            self.records[record_id] = {key: values[i] for key, values in kwargs.items() if key != "ids"}

    async def query(self, **kwargs):
        self.owner.calls.append(("query", kwargs))
        return self.owner.query_response

    async def count(self) -> int:
        return len(self.records)


class FakeChroma:
    """In-memory stand-in for the chromadb async HTTP client."""

    def __init__(self, existing=(), fail_add_calls=(), query_response=None):
        self.collections = {name: FakeCollection(self, name, {}) for name in existing}
        self.calls: list[tuple[str, dict]] = []
        self.fail_add_calls = set(fail_add_calls)
        self.add_calls = 0
        self.available = True
        self.heartbeat_ok = True
        self.query_response = query_response or {
            "ids": [["a"]],
            "documents": [["class A {}"]],
            "metadatas": [[{"type": "CLASS", "className": "A"}]],
            "distances": [[0.0]],
        }

    async def get_or_create_collection(self, name, metadata=None, embedding_function=None):
        self.calls.append(("get_or_create_collection", {"name": name, "metadata": metadata}))
        if not self.available:
            raise ConnectionError("chroma unavailable")
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name, metadata)
        return self.collections[name]

    async def delete_collection(self, name):
        self.calls.append(("delete_collection", {"name": name}))
        if name not in self.collections:
            raise NotFoundError(f"Collection {name} does not exist.")
        del self.collections[name]

    async def heartbeat(self) -> int:
        if not self.heartbeat_ok:
            raise ConnectionError("chroma unavailable")
        return 1_700_000_000_000_000_000

    @property
    def count(self) -> int:
        return sum(len(c.records) for c in self.collections.values())

    def kwargs_of(self, op: str) -> list[dict]:
        return [kwargs for name, kwargs in self.calls if name == op]

    def ops(self) -> list[str]:
        return [name for name, _ in self.calls]


def embedding_response(request: httpx.Request) -> httpx.Response:
    """Fake /api/embeddings: a 3-dim vector derived from the prompt length."""
    prompt = json.loads(request.content)["prompt"]
    return httpx.Response(200, json={"embedding": [float(len(prompt)), 1.0, 0.5]})


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def chroma() -> FakeChroma:
    return FakeChroma()


@pytest.fixture
def java_repo(tmp_path):
    """A small Maven-style repo with main and test sources."""
    main = tmp_path / "src" / "main" / "java" / "com" / "example"
    (main / "web").mkdir(parents=True)
    (main / "service").mkdir()
    (main / "web" / "UserController.java").write_text(USER_CONTROLLER)
    (main / "service" / "UserService.java").write_text(USER_SERVICE)
    (main / "service" / "Broken.java").write_text("public class Broken { void x( }")
    test_dir = tmp_path / "src" / "test" / "java"
    test_dir.mkdir(parents=True)
    (test_dir / "UserControllerTest.java").write_text("public class UserControllerTest {}")
    (tmp_path / "target").mkdir()
    (tmp_path / "target" / "Generated.java").write_text("public class Generated {}")
    (tmp_path / "README.md").write_text("# demo")
    return tmp_path
