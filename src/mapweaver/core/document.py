"""The document handle: normalized forest, selection, history and collaborators.

``MindMapDocument`` is the single entry point the command layer talks to. Every structural
operation follows the same pipeline:

1. check preconditions up front (expected failures return ``None``/``False``/``MoveResult``);
2. build the new ``NormalizedData`` with pure copy-on-write ``tree_ops``;
3. swap it in, fix up selection, sync the denormalized forest, notify listeners;
4. record the change in history (dirty group or debounced commit) and ask for layout.

The document is single-writer: operations are synchronous and must not be started from inside
another operation (for example from an event listener).
"""

from __future__ import annotations

import contextlib
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Iterator

from pydantic import ValidationError

from mapweaver.config import Settings, load_settings
from mapweaver.core import tree_ops
from mapweaver.core.colors import branch_color, palette_color
from mapweaver.core.collaborators import DocumentSync, LayoutEngine
from mapweaver.core.errors import ReentrantMutationError, TreeIntegrityError
from mapweaver.core.geometry import initial_child_position
from mapweaver.core.history import HistoryEngine, HistoryState
from mapweaver.core.metadata import derive_child_meta, derive_sibling_meta
from mapweaver.core.normalized import (
    NormalizedData,
    collect_integrity_errors,
    denormalize,
    normalize,
)
from mapweaver.core.scheduler import Scheduler, SingleSlotTimer, default_scheduler
from mapweaver.core.selection import EditingMode, SelectionController, fallback_after_delete
from mapweaver.events import DocumentEvent, EventListener, EventType
from mapweaver.logging import configure_logging, document_context, get_logger, log_exception
from mapweaver.models.node import MarkdownMeta, MindMapNode, NodeLink
from mapweaver.models.results import MovePosition, MoveResult, RejectReason
from mapweaver.utils.ids import generate_document_id, generate_link_id, generate_node_id

logger = get_logger(__name__)

_PROTECTED_FIELDS = frozenset({"id", "children"})


def _collect_positions(laid_out: Iterable[MindMapNode]) -> dict[str, tuple[float, float]]:
    positions: dict[str, tuple[float, float]] = {}
    stack = list(laid_out)
    while stack:
        node = stack.pop()
        positions[node.id] = (float(node.x), float(node.y))
        stack.extend(node.children)
    return positions


def create_document(
    root_nodes: Iterable[MindMapNode] | None = None,
    *,
    settings: Settings | None = None,
    **kwargs: Any,
) -> MindMapDocument:
    """Application entry point: load settings, configure logging and open a document."""

    settings = settings or load_settings()
    configure_logging(settings.log_level)
    return MindMapDocument(root_nodes, settings=settings, **kwargs)


class MindMapDocument:
    """An editable outline forest.

    Args:
        root_nodes: Initial forest; loaded as the history baseline.
        settings: Document settings; loaded from the environment when omitted.
        scheduler: Timer source for debounced work.
        sync: Receives the denormalized forest after every change.
        layout: Computes coordinates when auto layout is enabled.
        document_id: Identifier used in logs and events.
    """

    def __init__(
        self,
        root_nodes: Iterable[MindMapNode] | None = None,
        *,
        settings: Settings | None = None,
        scheduler: Scheduler | None = None,
        sync: DocumentSync | None = None,
        layout: LayoutEngine | None = None,
        document_id: str | None = None,
    ):
        self.document_id = document_id or generate_document_id()
        self.settings = settings or load_settings()
        self.scheduler = scheduler or default_scheduler()
        self.sync = sync
        self.layout = layout

        self._data = NormalizedData()
        self._selection = SelectionController()
        self._listeners: list[EventListener] = []
        self._active_op: str | None = None

        self._layout_timer = SingleSlotTimer(self.scheduler, "layout")
        self._frame_timer = SingleSlotTimer(self.scheduler, "frame")
        self._history = HistoryEngine(
            capture=lambda: denormalize(self._data),
            timer=SingleSlotTimer(self.scheduler, "history"),
            debounce_ms=self.settings.history_debounce_ms,
            max_history=self.settings.max_history,
            on_commit=self._on_history_commit,
        )

        self.last_rejection: RejectReason | None = None

        self.load(root_nodes or [])

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def data(self) -> NormalizedData:
        """The live normalized state. Treat it as read-only."""
        return self._data

    @property
    def selected_node_id(self) -> str | None:
        return self._selection.selected_node_id

    @property
    def editing_node_id(self) -> str | None:
        return self._selection.editing_node_id

    @property
    def edit_text(self) -> str:
        return self._selection.edit_text

    @property
    def editing_mode(self) -> EditingMode | None:
        return self._selection.editing_mode

    @property
    def fallback_before_insert_id(self) -> str | None:
        return self._selection.fallback_before_insert_id

    @property
    def history(self) -> HistoryState:
        return self._history.state()

    @property
    def history_index(self) -> int:
        return self._history.index

    def root_nodes(self) -> list[MindMapNode]:
        """A fresh nested copy of the forest."""
        return denormalize(self._data)

    def find_node(self, node_id: str) -> MindMapNode | None:
        return self._data.nodes.get(node_id)

    def get_child_nodes(self, node_id: str) -> list[MindMapNode]:
        return [self._data.nodes[cid] for cid in self._data.children_map.get(node_id, []) if cid in self._data.nodes]

    def get_parent_id(self, node_id: str) -> str | None:
        return self._data.parent_map.get(node_id)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event_type: EventType, source: str, **metadata: Any) -> None:
        if not self._listeners:
            return
        event = DocumentEvent(
            document_id=self.document_id,
            event_type=event_type,
            source=source,
            metadata=metadata,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                log_exception(logger, "Document listener failed", event=event_type.value, source=source)

    def _on_history_commit(self, index: int) -> None:
        self._emit(EventType.HISTORY_COMMITTED, "history", index=index)

    # ------------------------------------------------------------------
    # Mutation pipeline
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        if self._active_op is not None:
            raise ReentrantMutationError(f"{name} started while {self._active_op} is running")
        self._active_op = name
        try:
            with document_context(document_id=self.document_id, op=name):
                yield
        finally:
            self._active_op = None

    def _commit_data(self, data: NormalizedData) -> None:
        if self.settings.verify_integrity:
            errors = collect_integrity_errors(data)
            if errors:
                raise TreeIntegrityError("; ".join(errors))
        self._data = data

    def _sync(self, source: str) -> None:
        if self.sync is not None:
            try:
                self.sync.sync_to_document(denormalize(self._data))
            except Exception:
                log_exception(logger, "Document sync failed", source=source)
        self._emit(EventType.MODEL_CHANGED, source)

    def _after_mutation(self, source: str, *, layout: bool = True, immediate_layout: bool = False) -> None:
        self._sync(source)
        self._history.note_change()
        if layout:
            self._request_layout(immediate_layout)

    def _reject(self, reason: RejectReason, op: str, node_id: str) -> None:
        self.last_rejection = reason
        logger.debug("%s rejected for %s: %s", op, node_id, reason.value)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _request_layout(self, immediate: bool = False) -> None:
        if not self.settings.auto_layout or self.layout is None:
            return
        if immediate:
            self._layout_timer.cancel()
            self._apply_layout("immediate")
        else:
            self._layout_timer.schedule(self.settings.layout_debounce_ms, self._run_scheduled_layout)

    def _run_scheduled_layout(self) -> None:
        with self._operation("auto_layout"):
            self._apply_layout("debounced")

    def _apply_layout(self, mode: str) -> None:
        if self.layout is None:
            return
        try:
            positions = _collect_positions(self.layout.compute_layout(denormalize(self._data)))
        except Exception:
            log_exception(logger, "Layout computation failed", mode=mode)
            return

        data = self._data
        moved = 0
        for node_id, (x, y) in positions.items():
            current = data.nodes.get(node_id)
            if current is None or (current.x, current.y) == (x, y):
                continue
            if data is self._data:
                data = data.clone()
            data.nodes[node_id] = current.model_copy(update={"x": x, "y": y})
            moved += 1

        self._data = data
        if moved:
            self._sync("layout")
        self._emit(EventType.LAYOUT_APPLIED, "layout", mode=mode, moved=moved)

    def apply_auto_layout(self, immediate: bool = False) -> None:
        """Ask the layout collaborator for coordinates now or after the layout debounce."""

        if self.layout is None:
            logger.debug("No layout engine attached")
            return
        if immediate:
            self._layout_timer.cancel()
            with self._operation("apply_auto_layout"):
                self._apply_layout("immediate")
        else:
            self._layout_timer.schedule(self.settings.layout_debounce_ms, self._run_scheduled_layout)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self, root_nodes: Iterable[MindMapNode]) -> bool:
        """Replace the forest and start a fresh history with it as the baseline.

        Returns:
            False when the forest is malformed (for example duplicate ids); nothing changes then.
        """

        with self._operation("load"):
            try:
                data = normalize(root_nodes)
                self._commit_data(data)
            except TreeIntegrityError:
                log_exception(logger, "load aborted")
                return False
            self._layout_timer.cancel()
            self._frame_timer.cancel()
            self._selection.reset()
            self.last_rejection = None
            self._history.reset(denormalize(data))
            self._sync("load")
            self._request_layout()
        logger.debug("Loaded %d nodes", len(data.nodes))
        return True

    def set_root_nodes(self, root_nodes: Iterable[MindMapNode]) -> bool:
        """Replace the forest as an undoable edit; False leaves the document untouched."""

        with self._operation("set_root_nodes"):
            try:
                self._commit_data(normalize(root_nodes))
            except TreeIntegrityError:
                log_exception(logger, "set_root_nodes aborted")
                return False
            self._selection.prune(self._data)
            self._after_mutation("set_root_nodes")
            return True

    # ------------------------------------------------------------------
    # Node attributes
    # ------------------------------------------------------------------

    def _update_node(self, node_id: str, patch: dict[str, Any]) -> bool:
        node = self._data.nodes.get(node_id)
        if node is None:
            return False

        patch = {key: value for key, value in patch.items() if key not in _PROTECTED_FIELDS}
        if node.is_preface:
            patch.pop("text", None)
        if not patch:
            return False

        merged = node.model_dump()
        merged.update(patch)
        try:
            updated = MindMapNode.model_validate(merged)
        except ValidationError as exc:
            logger.warning("Ignoring invalid patch for %s: %s", node_id, exc)
            return False
        if updated.model_dump() == node.model_dump():
            return False

        self._commit_data(tree_ops.replace_node(self._data, updated))
        self._after_mutation("update_node")
        return True

    def update_node(self, node_id: str, patch: dict[str, Any] | None = None, **fields: Any) -> bool:
        """Merge ``patch`` into a node.

        ``text`` is ignored for preface nodes; ``id`` and ``children`` are never patched.

        Returns:
            True when the node changed.
        """

        with self._operation("update_node"):
            try:
                return self._update_node(node_id, {**(patch or {}), **fields})
            except TreeIntegrityError:
                log_exception(logger, "update_node aborted", node_id=node_id)
                return False

    def toggle_node_collapse(self, node_id: str) -> bool:
        """Flip ``collapsed``; expanding lays out immediately, collapsing is debounced."""

        with self._operation("toggle_node_collapse"):
            node = self._data.nodes.get(node_id)
            if node is None:
                return False
            was_collapsed = node.collapsed
            try:
                self._commit_data(tree_ops.replace_node(self._data, node.model_copy(update={"collapsed": not was_collapsed})))
            except TreeIntegrityError:
                log_exception(logger, "toggle_node_collapse aborted", node_id=node_id)
                return False
            self._after_mutation("toggle_node_collapse", immediate_layout=was_collapsed)
            return True

    def apply_local_patch(self, node_id: str, patch: dict[str, Any]) -> bool:
        """Patch a node in the live map only: no sync, history or layout.

        Pair with ``schedule_full_resync`` to publish the change.
        """

        node = self._data.nodes.get(node_id)
        if node is None:
            return False
        data = self._data.clone()
        data.nodes[node_id] = node.model_copy(update=patch)
        self._data = data
        return True

    def schedule_full_resync(self) -> None:
        """Sync, record history and flush persistence on the next frame."""

        self._frame_timer.schedule(self.settings.frame_interval_ms, self._full_resync)

    def _full_resync(self) -> None:
        with self._operation("full_resync"):
            self._after_mutation("checkbox", layout=False)
            if self.sync is not None:
                try:
                    self.sync.flush()
                except Exception:
                    log_exception(logger, "Document flush failed")

    def toggle_node_checkbox(self, node_id: str, checked: bool | None = None) -> bool:
        """Set (or flip, when ``checked`` is None) the checked state of a checkbox item."""

        with self._operation("toggle_node_checkbox"):
            node = self._data.nodes.get(node_id)
            if node is None or not node.is_checkbox or node.markdown_meta is None:
                return False
            value = (not node.markdown_meta.is_checked) if checked is None else checked
            meta = node.markdown_meta.model_copy(update={"is_checked": value})
            self.apply_local_patch(node_id, {"markdown_meta": meta})
            self.schedule_full_resync()
            return True

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------

    def _new_node(self, text: str | None, meta: MarkdownMeta | None) -> MindMapNode:
        return MindMapNode(
            id=generate_node_id(),
            text=self.settings.default_node_text if text is None else text,
            font_size=self.settings.font_size,
            markdown_meta=meta,
        )

    def _place_under(self, node: MindMapNode, parent: MindMapNode, fallback: MindMapNode) -> MindMapNode:
        try:
            x, y = initial_child_position(node, parent, self.settings.font_size)
        except Exception as exc:
            logger.warning("Position calculation failed, using fallback: %s", exc)
            x, y = fallback.x, fallback.y
        return node.model_copy(update={"x": x, "y": y})

    def _assign_color(self, data: NormalizedData, node_id: str) -> None:
        # ``data`` is a fresh result of tree_ops, so its node map can be patched in place
        parent_id = data.parent_map.get(node_id)
        if parent_id is None:
            color = palette_color(data.root_node_ids.index(node_id))
        elif parent_id not in data.parent_map:
            color = palette_color(data.children_map[parent_id].index(node_id))
        else:
            color = branch_color(data, node_id, self.settings.color_set)
        data.nodes[node_id] = data.nodes[node_id].model_copy(update={"color": color})

    def _finish_insert(self, data: NormalizedData, node_id: str, reference_id: str, source: str) -> None:
        self._assign_color(data, node_id)
        self._commit_data(data)
        self.last_rejection = None
        self._selection.select(node_id)
        self._selection.remember_insert(reference_id)
        self._after_mutation(source, immediate_layout=True)

    def add_child_node(self, parent_id: str, text: str | None = None) -> str | None:
        """Append a new child under ``parent_id`` and select it.

        Returns:
            The new node id, or None when the parent is missing, a table or a preface.
        """

        with self._operation("add_child_node"):
            parent = self._data.nodes.get(parent_id)
            if parent is None:
                return self._reject(RejectReason.MISSING_NODE, "add_child_node", parent_id)
            if parent.is_table:
                return self._reject(RejectReason.TABLE_PARENT, "add_child_node", parent_id)
            if parent.is_preface:
                return self._reject(RejectReason.PREFACE_PARENT, "add_child_node", parent_id)

            committed = False
            self._history.begin_group("insert-child")
            try:
                meta = derive_child_meta(parent, self.get_child_nodes(parent_id))
                node = self._place_under(self._new_node(text, meta), parent, fallback=parent)

                data = self._data
                if parent.collapsed:
                    data = tree_ops.replace_node(data, parent.model_copy(update={"collapsed": False}))
                data = tree_ops.add_child(data, parent_id, node)
                self._finish_insert(data, node.id, parent_id, "add_child_node")
                committed = True
            except TreeIntegrityError:
                log_exception(logger, "add_child_node aborted", parent_id=parent_id)
                return None
            finally:
                self._history.end_group(commit=committed)
            return node.id

    def add_sibling_node(self, node_id: str, text: str | None = None, insert_after: bool = True) -> str | None:
        """Insert a new node next to ``node_id`` (a new root when ``node_id`` is a root).

        Returns:
            The new node id, or None when ``node_id`` is unknown.
        """

        with self._operation("add_sibling_node"):
            reference = self._data.nodes.get(node_id)
            if reference is None:
                return self._reject(RejectReason.MISSING_NODE, "add_sibling_node", node_id)

            committed = False
            self._history.begin_group("insert-sibling")
            try:
                meta = derive_sibling_meta(self._data, reference)
                parent_id = self._data.parent_map.get(node_id)
                if parent_id is None:
                    node = self._new_node(text, meta).model_copy(update={"x": reference.x, "y": reference.y})
                    data = tree_ops.add_root_sibling(self._data, node_id, node, insert_after)
                else:
                    parent = self._data.nodes.get(parent_id)
                    if parent is None:
                        raise TreeIntegrityError(f"parent node not found: {parent_id}")
                    node = self._place_under(self._new_node(text, meta), parent, fallback=reference)
                    data = tree_ops.add_sibling(self._data, node_id, node, insert_after)
                self._finish_insert(data, node.id, node_id, "add_sibling_node")
                committed = True
            except TreeIntegrityError:
                log_exception(logger, "add_sibling_node aborted", node_id=node_id)
                return None
            finally:
                self._history.end_group(commit=committed)
            return node.id

    # ------------------------------------------------------------------
    # Deletion and moves
    # ------------------------------------------------------------------

    def _delete_node(self, node_id: str) -> bool:
        if node_id not in self._data.nodes:
            return False
        if self._data.is_root(node_id) and len(self._data.root_node_ids) <= 1:
            logger.warning("Refusing to delete the last root node %s", node_id)
            return False

        fallback = fallback_after_delete(self._data, node_id)
        committed = False
        self._history.begin_group("delete")
        try:
            self._commit_data(tree_ops.delete_subtree(self._data, node_id))
            selected = self._selection.selected_node_id
            self._selection.prune(self._data)
            if selected is None or selected not in self._data.nodes:
                self._selection.select(fallback)
            self._after_mutation("delete_node")
            committed = True
        except TreeIntegrityError:
            log_exception(logger, "delete_node aborted", node_id=node_id)
            return False
        finally:
            self._history.end_group(commit=committed)
        return True

    def delete_node(self, node_id: str) -> bool:
        """Remove ``node_id`` with its subtree and move selection to a neighbour.

        The last remaining root cannot be deleted.
        """

        with self._operation("delete_node"):
            return self._delete_node(node_id)

    def _apply_move(self, op: str, result: MoveResult, data: NormalizedData) -> MoveResult:
        if not result.success:
            logger.warning("%s rejected: %s", op, result.reason)
            return result
        if data is self._data:
            return result
        try:
            self._commit_data(data)
        except TreeIntegrityError as exc:
            log_exception(logger, f"{op} aborted")
            return MoveResult.fail(str(exc))
        self._after_mutation(op)
        return result

    def move_node(self, node_id: str, new_parent_id: str) -> MoveResult:
        """Re-parent ``node_id`` as the last child of ``new_parent_id``."""

        with self._operation("move_node"):
            try:
                result, data = tree_ops.move_node(self._data, node_id, new_parent_id)
            except TreeIntegrityError as exc:
                log_exception(logger, "move_node aborted", node_id=node_id, new_parent_id=new_parent_id)
                return MoveResult.fail(str(exc))
            return self._apply_move("move_node", result, data)

    def move_node_with_position(self, node_id: str, target_id: str, position: MovePosition) -> MoveResult:
        """Move ``node_id`` before, after or into ``target_id``."""

        with self._operation("move_node_with_position"):
            try:
                result, data = tree_ops.move_node_with_position(self._data, node_id, target_id, position)
            except TreeIntegrityError as exc:
                log_exception(logger, "move_node_with_position aborted", node_id=node_id, target_id=target_id)
                return MoveResult.fail(str(exc))
            return self._apply_move("move_node_with_position", result, data)

    def change_sibling_order(self, dragged_id: str, target_id: str, insert_before: bool = True) -> bool:
        """Reorder two siblings; a no-op returning False across different parents."""

        with self._operation("change_sibling_order"):
            data = self._data
            if dragged_id not in data.nodes or target_id not in data.nodes:
                return False
            if data.parent_map.get(dragged_id) != data.parent_map.get(target_id):
                logger.debug("change_sibling_order across parents ignored: %s -> %s", dragged_id, target_id)
                return False
            try:
                reordered = tree_ops.change_sibling_order(data, dragged_id, target_id, insert_before)
                if reordered is data:
                    return False
                self._commit_data(reordered)
            except TreeIntegrityError:
                log_exception(logger, "change_sibling_order aborted", dragged_id=dragged_id, target_id=target_id)
                return False
            self._after_mutation("change_sibling_order")
            return True

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def _replace_links(self, node: MindMapNode, links: list[NodeLink], source: str) -> None:
        self._commit_data(tree_ops.replace_node(self._data, node.model_copy(update={"links": links})))
        self._after_mutation(source, layout=False)

    def add_node_link(self, node_id: str, **fields: Any) -> NodeLink | None:
        with self._operation("add_node_link"):
            node = self._data.nodes.get(node_id)
            if node is None:
                return None
            try:
                link = NodeLink(id=generate_link_id(), **fields)
            except ValidationError as exc:
                logger.warning("Ignoring invalid link for %s: %s", node_id, exc)
                return None
            self._replace_links(node, [*node.links, link], "add_node_link")
            return link

    def update_node_link(self, node_id: str, link_id: str, **updates: Any) -> NodeLink | None:
        with self._operation("update_node_link"):
            node = self._data.nodes.get(node_id)
            if node is None:
                return None
            index = next((i for i, link in enumerate(node.links) if link.id == link_id), None)
            if index is None:
                return None
            merged = node.links[index].model_dump()
            merged.update({key: value for key, value in updates.items() if key != "id"})
            merged["updated_at"] = datetime.now(timezone.utc)
            try:
                link = NodeLink.model_validate(merged)
            except ValidationError as exc:
                logger.warning("Ignoring invalid link update for %s: %s", link_id, exc)
                return None
            links = list(node.links)
            links[index] = link
            self._replace_links(node, links, "update_node_link")
            return link

    def delete_node_link(self, node_id: str, link_id: str) -> bool:
        with self._operation("delete_node_link"):
            node = self._data.nodes.get(node_id)
            if node is None:
                return False
            links = [link for link in node.links if link.id != link_id]
            if len(links) == len(node.links):
                return False
            self._replace_links(node, links, "delete_node_link")
            return True

    # ------------------------------------------------------------------
    # Selection and editing
    # ------------------------------------------------------------------

    def select_node(self, node_id: str | None) -> bool:
        if node_id is not None and node_id not in self._data.nodes:
            return False
        self._selection.select(node_id)
        return True

    def _start_editing(self, node_id: str, mode: EditingMode) -> bool:
        node = self._data.nodes.get(node_id)
        if node is None:
            return False
        self._selection.start_editing(node_id, node.text, mode)
        return True

    def start_editing(self, node_id: str) -> bool:
        """Edit ``node_id`` with its whole text selected."""
        return self._start_editing(node_id, EditingMode.SELECT_ALL)

    def start_editing_with_cursor_at_end(self, node_id: str) -> bool:
        return self._start_editing(node_id, EditingMode.CURSOR_AT_END)

    def start_editing_with_cursor_at_start(self, node_id: str) -> bool:
        return self._start_editing(node_id, EditingMode.CURSOR_AT_START)

    @property
    def is_editing(self) -> bool:
        return self._selection.is_editing

    def set_edit_text(self, text: str) -> bool:
        """Replace the edit buffer; ignored when no node is being edited."""

        if not self._selection.is_editing:
            return False
        self._selection.edit_text = text
        return True

    def finish_editing(self, node_id: str, text: str) -> None:
        """Commit ``text`` to ``node_id``; empty text abandons (deletes) the node.

        Abandoning ends the open history group without a commit and selects the node that was
        anchored before the insertion, else the parent.
        """

        with self._operation("finish_editing"):
            if not text:
                parent_id = self._data.parent_map.get(node_id)
                self._delete_node(node_id)
                self._history.end_group(commit=False)
                self._selection.stop_editing()
                reference_id = self._selection.take_fallback()
                if reference_id is not None and reference_id in self._data.nodes:
                    self._selection.select(reference_id)
                elif parent_id is not None and parent_id in self._data.nodes:
                    self._selection.select(parent_id)
                return

            self._selection.stop_editing()
            self._selection.select(node_id)
            self._selection.take_fallback()
            try:
                self._update_node(node_id, {"text": text})
            except TreeIntegrityError:
                log_exception(logger, "finish_editing aborted", node_id=node_id)
            self._history.end_group(commit=True)

    def cancel_editing(self) -> None:
        self._selection.stop_editing()
        self._history.end_group(commit=False)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def commit_snapshot(self) -> bool:
        return self._history.commit_snapshot()

    def schedule_commit_snapshot(self) -> None:
        self._history.schedule_commit_snapshot()

    def cancel_pending_commit(self) -> bool:
        """Drop a pending debounced commit. Safe to call when nothing is pending."""
        return self._history.cancel_pending_commit()

    def begin_history_group(self, label: str | None = None) -> None:
        self._history.begin_group(label)

    def end_history_group(self, commit: bool = True) -> bool:
        return self._history.end_group(commit)

    @contextlib.contextmanager
    def history_group(self, label: str | None = None) -> Iterator["MindMapDocument"]:
        """Group everything inside the block into one undo step.

        The group is discarded without a commit when the block raises.
        """

        self.begin_history_group(label)
        try:
            yield self
        except BaseException:
            self.end_history_group(commit=False)
            raise
        self.end_history_group(commit=True)

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    def _restore(self, snapshot: list[MindMapNode], source: str) -> None:
        self._data = normalize(snapshot)
        self._selection.stop_editing()
        self._selection.prune(self._data)
        self._sync(source)
        self._emit(EventType.HISTORY_RESTORED, source, index=self._history.index)

    def undo(self) -> bool:
        with self._operation("undo"):
            snapshot = self._history.undo()
            if snapshot is None:
                return False
            self._restore(snapshot, "undo")
            return True

    def redo(self) -> bool:
        with self._operation("redo"):
            snapshot = self._history.redo()
            if snapshot is None:
                return False
            self._restore(snapshot, "redo")
            return True
