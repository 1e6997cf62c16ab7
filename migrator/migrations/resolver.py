"""
依赖解析

对迁移定义做拓扑排序，保证每个迁移都排在它依赖的迁移之后；
多个迁移同时可执行时按声明顺序排列，相同输入总是得到相同的顺序。
"""
import heapq
from typing import Dict, Iterator, List, Optional, Sequence, Set

from migrator.exceptions import CyclicDependency, DuplicateMigration, UnknownDependency
from migrator.migrations.definition import MigrationDefinition


def _find_cycle(remaining: Sequence[MigrationDefinition]) -> List[str]:
    """在未能排序的节点中找出一条环路，返回首尾相同的路径"""
    graph = {d.name: list(d.depends_on) for d in remaining}
    visiting: List[str] = []
    visited: Set[str] = set()

    def visit(name: str) -> Optional[List[str]]:
        if name in visiting:
            start = visiting.index(name)
            return visiting[start:] + [name]
        if name in visited or name not in graph:
            return None
        visiting.append(name)
        for dep in graph[name]:
            cycle = visit(dep)
            if cycle:
                return cycle
        visiting.pop()
        visited.add(name)
        return None

    for definition in remaining:
        cycle = visit(definition.name)
        if cycle:
            return cycle
    return [d.name for d in remaining]


def resolve(definitions: Sequence[MigrationDefinition]) -> List[MigrationDefinition]:
    """
    计算迁移执行顺序

    Raises:
        DuplicateMigration: 名称重复
        UnknownDependency: 依赖了不存在的迁移
        CyclicDependency: 依赖关系成环
    """
    index: Dict[str, int] = {}
    for i, definition in enumerate(definitions):
        if definition.name in index:
            raise DuplicateMigration(definition.name)
        index[definition.name] = i

    for definition in definitions:
        for dep in definition.depends_on:
            if dep not in index:
                raise UnknownDependency(definition.name, dep)

    # Kahn 算法，用声明序号做最小堆保证稳定
    in_degree = {d.name: len(set(d.depends_on)) for d in definitions}
    dependents: Dict[str, List[str]] = {d.name: [] for d in definitions}
    for definition in definitions:
        for dep in set(definition.depends_on):
            dependents[dep].append(definition.name)

    ready = [index[name] for name, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)

    ordered: List[MigrationDefinition] = []
    while ready:
        definition = definitions[heapq.heappop(ready)]
        ordered.append(definition)
        for child in dependents[definition.name]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                heapq.heappush(ready, index[child])

    if len(ordered) != len(definitions):
        placed = {d.name for d in ordered}
        remaining = [d for d in definitions if d.name not in placed]
        raise CyclicDependency(_find_cycle(remaining))

    return ordered


class MigrationRegistry:
    """
    迁移注册表

    构建时完成校验和排序，任何注册表错误都会在执行迁移之前抛出。
    """

    def __init__(self, definitions: Sequence[MigrationDefinition]):
        self._definitions = list(definitions)
        self._ordered = resolve(self._definitions)
        self._by_name = {d.name: d for d in self._definitions}

    @property
    def ordered(self) -> List[MigrationDefinition]:
        """按依赖关系排好序的迁移列表"""
        return list(self._ordered)

    def get(self, name: str) -> Optional[MigrationDefinition]:
        return self._by_name.get(name)

    def dependents_of(self, name: str) -> List[MigrationDefinition]:
        """返回直接或间接依赖 name 的所有迁移（按执行顺序）"""
        affected = {name}
        result = []
        for definition in self._ordered:
            if affected.intersection(definition.depends_on):
                affected.add(definition.name)
                result.append(definition)
        return result

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[MigrationDefinition]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)
