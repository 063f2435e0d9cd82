"""Calculate incremental list updates between two presented snapshots."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from ...domain.models.core import ItemComparator


@dataclass(frozen=True)
class InsertOp:
    index: int
    items: Tuple[Any, ...]

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class RemoveOp:
    index: int
    count: int


@dataclass(frozen=True)
class ChangeOp:
    index: int
    items: Tuple[Any, ...]

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class MoveOp:
    from_index: int
    to_index: int


ListOp = Union[InsertOp, RemoveOp, ChangeOp, MoveOp]


class ListUpdateCallback(Protocol):
    """Receives every structural operation around its application.

    ``begin`` is called while the presented list still has its previous
    contents and ``end`` once the operation has been applied.
    """

    def begin(self, op: ListOp) -> None: ...

    def end(self, op: ListOp) -> None: ...


def apply_op(items: List[Any], op: ListOp) -> None:
    if isinstance(op, InsertOp):
        items[op.index:op.index] = list(op.items)
    elif isinstance(op, RemoveOp):
        del items[op.index:op.index + op.count]
    elif isinstance(op, MoveOp):
        items.insert(op.to_index, items.pop(op.from_index))
    elif isinstance(op, ChangeOp):
        items[op.index:op.index + len(op.items)] = list(op.items)
    else:
        raise TypeError(f"Unsupported list operation: {op!r}")


def apply_ops(items: Sequence[Any], ops: Sequence[ListOp]) -> List[Any]:
    result = list(items)
    for op in ops:
        apply_op(result, op)
    return result


def shift_ops(ops: Sequence[ListOp], offset: int) -> List[ListOp]:
    if not offset:
        return list(ops)
    shifted: List[ListOp] = []
    for op in ops:
        if isinstance(op, MoveOp):
            shifted.append(MoveOp(op.from_index + offset, op.to_index + offset))
        else:
            shifted.append(replace(op, index=op.index + offset))
    return shifted


def _runs(indices: Sequence[int]) -> List[Tuple[int, int]]:
    """Group ascending *indices* into ``(start, count)`` runs."""
    runs: List[Tuple[int, int]] = []
    for index in indices:
        if runs and runs[-1][0] + runs[-1][1] == index:
            start, count = runs[-1]
            runs[-1] = (start, count + 1)
        else:
            runs.append((index, 1))
    return runs


class ListDiffCalculator:
    """Produces operations that turn one presented list into another.

    Items are matched with ``comparator.same_identity``.  Matched items whose
    content differs produce :class:`ChangeOp`; ``None`` entries stand for
    placeholders and only ever match other placeholders.
    """

    def __init__(self, comparator: ItemComparator) -> None:
        self._comparator = comparator

    # ------------------------------------------------------------------
    # Resident lists
    # ------------------------------------------------------------------
    def diff(self, old: Sequence[Any], new: Sequence[Any]) -> List[ListOp]:
        old = list(old)
        new = list(new)
        pairs = self._match(old, new)
        matched_old = {i for i, _ in pairs}
        matched_new = {j for _, j in pairs}

        removed = [i for i in range(len(old)) if i not in matched_old]
        inserted = [j for j in range(len(new)) if j not in matched_new]

        # Items that left the common subsequence but still exist become moves.
        targets: Dict[int, int] = dict(pairs)
        for i in removed:
            for j in inserted:
                if self._same(old[i], new[j]):
                    targets[i] = j
                    inserted.remove(j)
                    break
        removed = [i for i in removed if i not in targets]

        ops: List[ListOp] = []
        for start, count in reversed(_runs(removed)):
            ops.append(RemoveOp(start, count))

        current = [i for i in range(len(old)) if i in targets]
        for position, wanted in enumerate(sorted(current, key=targets.__getitem__)):
            found = current.index(wanted)
            if found != position:
                ops.append(MoveOp(found, position))
                current.insert(position, current.pop(found))

        for start, count in _runs(inserted):
            ops.append(InsertOp(start, tuple(new[start:start + count])))

        changed = sorted(j for i, j in targets.items() if self._content_changed(old[i], new[j]))
        for start, count in _runs(changed):
            ops.append(ChangeOp(start, tuple(new[start:start + count])))
        return ops

    # ------------------------------------------------------------------
    # Presented lists with placeholders
    # ------------------------------------------------------------------
    def diff_presented(
        self,
        old_before: int,
        old_items: Sequence[Any],
        old_after: int,
        new_before: int,
        new_items: Sequence[Any],
        new_after: int,
    ) -> List[ListOp]:
        """Full replacement: adjust leading placeholders, diff, adjust trailing."""
        ops: List[ListOp] = []
        if new_before > old_before:
            ops.append(InsertOp(0, (None,) * (new_before - old_before)))
        elif new_before < old_before:
            ops.append(RemoveOp(0, old_before - new_before))

        ops.extend(shift_ops(self.diff(old_items, new_items), new_before))

        tail = new_before + len(new_items)
        if new_after > old_after:
            ops.append(InsertOp(tail + old_after, (None,) * (new_after - old_after)))
        elif new_after < old_after:
            ops.append(RemoveOp(tail + new_after, old_after - new_after))
        return ops

    def region_ops(
        self,
        start: int,
        old_region: Sequence[Any],
        new_region: Sequence[Any],
        *,
        align_end: bool,
    ) -> List[ListOp]:
        """Replace the region at *start* whose far side is fixed.

        ``align_end`` means the region's end touches unchanged content, so the
        length difference is absorbed at *start*; otherwise it is absorbed at
        the region's end.  Overlapping positions that differ become changes.
        """
        ops: List[ListOp] = []
        delta = len(new_region) - len(old_region)
        if align_end:
            if delta > 0:
                ops.append(InsertOp(start, tuple(new_region[:delta])))
            elif delta < 0:
                ops.append(RemoveOp(start, -delta))
            old_overlap = list(old_region[max(0, -delta):])
            new_overlap = list(new_region[max(0, delta):])
            base = start + max(0, delta)
        else:
            if delta > 0:
                ops.append(
                    InsertOp(start + len(old_region), tuple(new_region[len(old_region):]))
                )
            elif delta < 0:
                ops.append(RemoveOp(start + len(new_region), -delta))
            common = min(len(old_region), len(new_region))
            old_overlap = list(old_region[:common])
            new_overlap = list(new_region[:common])
            base = start

        differing = [
            offset
            for offset, (before, after) in enumerate(zip(old_overlap, new_overlap))
            if self._slot_changed(before, after)
        ]
        for offset, count in _runs(differing):
            ops.append(ChangeOp(base + offset, tuple(new_overlap[offset:offset + count])))
        return ops

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------
    def _same(self, old: Optional[Any], new: Optional[Any]) -> bool:
        if old is None or new is None:
            return old is None and new is None
        return self._comparator.same_identity(old, new)

    def _content_changed(self, old: Optional[Any], new: Optional[Any]) -> bool:
        if old is None or new is None:
            return False
        return not self._comparator.same_content(old, new)

    def _slot_changed(self, old: Optional[Any], new: Optional[Any]) -> bool:
        if not self._same(old, new):
            return True
        return self._content_changed(old, new)

    def _match(self, old: List[Any], new: List[Any]) -> List[Tuple[int, int]]:
        n, m = len(old), len(new)
        prefix = 0
        while prefix < n and prefix < m and self._same(old[prefix], new[prefix]):
            prefix += 1
        suffix = 0
        while (
            suffix < n - prefix
            and suffix < m - prefix
            and self._same(old[n - 1 - suffix], new[m - 1 - suffix])
        ):
            suffix += 1

        pairs = [(k, k) for k in range(prefix)]
        middle = self._myers(old[prefix:n - suffix], new[prefix:m - suffix])
        pairs.extend((prefix + i, prefix + j) for i, j in middle)
        pairs.extend((n - suffix + k, m - suffix + k) for k in range(suffix))
        return pairs

    def _myers(self, old: List[Any], new: List[Any]) -> List[Tuple[int, int]]:
        """Longest common subsequence as ascending ``(old, new)`` index pairs."""
        n, m = len(old), len(new)
        if not n or not m:
            return []

        v: Dict[int, int] = {1: 0}
        trace: List[Dict[int, int]] = []
        done = False
        for d in range(n + m + 1):
            trace.append(dict(v))
            for k in range(-d, d + 1, 2):
                if k == -d or (k != d and v[k - 1] < v[k + 1]):
                    x = v[k + 1]
                else:
                    x = v[k - 1] + 1
                y = x - k
                while x < n and y < m and self._same(old[x], new[y]):
                    x += 1
                    y += 1
                v[k] = x
                if x >= n and y >= m:
                    done = True
                    break
            if done:
                break

        pairs: List[Tuple[int, int]] = []
        x, y = n, m
        for d in range(len(trace) - 1, -1, -1):
            v = trace[d]
            k = x - y
            if k == -d or (k != d and v[k - 1] < v[k + 1]):
                prev_k = k + 1
            else:
                prev_k = k - 1
            prev_x = v[prev_k]
            prev_y = prev_x - prev_k
            while x > prev_x and y > prev_y:
                x -= 1
                y -= 1
                pairs.append((x, y))
            x, y = prev_x, prev_y
        pairs.reverse()
        return pairs
