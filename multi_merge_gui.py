#!/usr/bin/env python3
"""Standalone GUI for merging branches across many git repositories."""
from __future__ import annotations

import os
import tkinter as tk
from tkinter import ttk, messagebox, scrolledtext
from pathlib import Path
from typing import Iterable, List, Optional
from datetime import datetime

from build_runner import ProgressMonitor, ShellBuild
from git_config import GitConfig
from git_operations import GitManagerError
from merge_plan import MergePlan
from multi_merge import configure_logging
from multi_merger import MultiMerger
from repo_scanner import RepoScanner
from repo_state import MergePhase, RepoState
from settings_db import MergeSettings, SettingsDB
from working_tree_manager import WorkingTreeManager


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================
def now_display() -> str:
    """Return current time in human-readable format."""
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class MergeDialog(tk.Toplevel):
    """Modal dialog collecting the branches to merge and what to do afterwards."""

    def __init__(self, parent: tk.Tk, known_branches: Iterable[str], settings: MergeSettings) -> None:
        super().__init__(parent)
        self.title("Multi-Merge")
        self.resizable(True, True)
        self.result: Optional[MergePlan] = None

        # Make it modal
        self.transient(parent)
        self.grab_set()

        ttk.Label(self, text="Choose branches to merge (one per line):", font=("Helvetica", 11)).pack(
            anchor=tk.W, pady=(10, 4), padx=20
        )

        body = ttk.Frame(self)
        body.pack(fill=tk.BOTH, expand=True, padx=20)
        self.branches_text = tk.Text(body, width=40, height=10, font=("Courier", 10))
        self.branches_text.insert("1.0", settings.branches_text)
        self.branches_text.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)

        # Known branches; double-click adds one to the list
        known = ttk.Frame(body)
        known.pack(side=tk.LEFT, fill=tk.Y, padx=(8, 0))
        ttk.Label(known, text="Known branches").pack(anchor=tk.W)
        self.known_list = tk.Listbox(known, height=10, width=30, exportselection=False)
        for name in sorted(known_branches):
            self.known_list.insert(tk.END, name)
        self.known_list.pack(fill=tk.Y, expand=True)
        self.known_list.bind("<Double-Button-1>", lambda e: self._add_selected())

        options = ttk.Frame(self)
        options.pack(fill=tk.X, padx=20, pady=10)
        self.make_var = tk.BooleanVar(value=settings.make)
        self.quit_var = tk.BooleanVar(value=settings.quit)
        self.checkout_back_var = tk.BooleanVar(value=settings.checkout_back)
        self.delete_temp_var = tk.BooleanVar(value=settings.delete_temp_branch)
        self.build_command_var = tk.StringVar(value=settings.build_command)
        ttk.Checkbutton(options, text="Make after merge?", variable=self.make_var, command=self._sync_options).grid(
            row=0, column=0, sticky=tk.W
        )
        self.quit_check = ttk.Checkbutton(options, text="Quit after make?", variable=self.quit_var)
        self.quit_check.grid(row=0, column=1, sticky=tk.W, padx=8)
        self.checkout_back_check = ttk.Checkbutton(
            options, text="Check out original branches after make?", variable=self.checkout_back_var, command=self._sync_options
        )
        self.checkout_back_check.grid(row=1, column=0, sticky=tk.W)
        self.delete_temp_check = ttk.Checkbutton(options, text="Delete temporary branch?", variable=self.delete_temp_var)
        self.delete_temp_check.grid(row=1, column=1, sticky=tk.W, padx=8)
        ttk.Label(options, text="Build command:").grid(row=2, column=0, sticky=tk.W, pady=(6, 0))
        self.build_entry = ttk.Entry(options, textvariable=self.build_command_var, width=40)
        self.build_entry.grid(row=2, column=1, sticky=tk.W, padx=8, pady=(6, 0))
        self._sync_options()

        # OK and Cancel buttons
        button_frame = ttk.Frame(self)
        button_frame.pack(pady=10)
        ttk.Button(button_frame, text="Merge", command=self._on_ok).pack(side=tk.LEFT, padx=5)
        ttk.Button(button_frame, text="Cancel", command=self._on_cancel).pack(side=tk.LEFT, padx=5)

        self.bind("<Escape>", lambda e: self._on_cancel())
        self.branches_text.focus_set()

        # Center on parent
        self.update_idletasks()
        x = parent.winfo_x() + (parent.winfo_width() // 2) - (self.winfo_width() // 2)
        y = parent.winfo_y() + (parent.winfo_height() // 2) - (self.winfo_height() // 2)
        self.geometry(f"+{x}+{y}")

    def _add_selected(self) -> None:
        sel = self.known_list.curselection()
        if not sel:
            return
        name = self.known_list.get(sel[0])
        current = self.branches_text.get("1.0", tk.END).strip()
        if name in current.splitlines():
            return
        self.branches_text.insert(tk.END, ("\n" if current else "") + name)

    def _sync_options(self) -> None:
        """Options that only apply after a build are disabled without one."""
        make_state = "normal" if self.make_var.get() else "disabled"
        for widget in (self.quit_check, self.checkout_back_check, self.build_entry):
            widget.configure(state=make_state)
        back = self.make_var.get() and self.checkout_back_var.get()
        self.delete_temp_check.configure(state="normal" if back else "disabled")

    def _on_ok(self) -> None:
        try:
            self.result = MergePlan.from_text(
                self.branches_text.get("1.0", tk.END),
                make=self.make_var.get(),
                quit=self.quit_var.get(),
                rollback_after_make=self.checkout_back_var.get(),
                delete_temp_branch=self.delete_temp_var.get(),
                build_command=self.build_command_var.get(),
            )
        except GitManagerError as exc:
            messagebox.showerror("Invalid Input", str(exc), parent=self)
            return
        self.destroy()

    def _on_cancel(self) -> None:
        self.result = None
        self.destroy()


class TkDecision:
    """Ask the rollback question with a modal message box."""

    def __init__(self, parent: tk.Tk) -> None:
        self.parent = parent

    def confirm(self, title: str, message: str) -> bool:
        return messagebox.askyesno(title, message, icon=messagebox.ERROR, parent=self.parent)


class OutputNotifier:
    """Report run outcomes in the output pane and the status bar."""

    def __init__(self, gui: "MultiMergeGUI") -> None:
        self.gui = gui

    def notify_success(self, title: str, body: str = "") -> None:
        self.gui.append_output(f"✅ {title}" + (f"\n{body}" if body else ""))
        self.gui.status_var.set(f"✓ {title}")

    def notify_error(self, title: str, body: str) -> None:
        self.gui.append_output(f"❌ {title}" + (f"\n{body}" if body else ""))
        self.gui.status_var.set(f"✗ {title}")


# ============================================================================
# GUI APPLICATION
# ============================================================================
class MultiMergeGUI:
    def __init__(self, root: tk.Tk, settings: Optional[SettingsDB] = None) -> None:
        self.root = root
        self.root.title("Multi-Merge - Merge Branches Across Repositories")
        self.root.configure(bg="#f0f0f0")

        self.settings = settings or SettingsDB()
        base_dir = self.settings.get_base_directory() or os.environ.get("BASE_DIR") or str(Path.home())
        self.base_var = tk.StringVar(value=base_dir)
        self.states: List[RepoState] = []
        self.monitor: Optional[ProgressMonitor] = None
        self.closed = False

        self._build_layout()
        self.refresh_repos()

        # Register cleanup on window close
        self.root.protocol("WM_DELETE_WINDOW", self.on_closing)

    def _build_layout(self) -> None:
        top = ttk.Frame(self.root, padding=10)
        top.pack(fill=tk.X, padx=12, pady=12)

        ttk.Label(top, text="📁 Base directory:", font=("Helvetica", 11, "bold")).pack(side=tk.LEFT, padx=(0, 8))
        entry = ttk.Entry(top, textvariable=self.base_var, width=70, font=("Helvetica", 10))
        entry.pack(side=tk.LEFT, padx=4)
        ttk.Button(top, text="🔄 Refresh", command=self.refresh_repos).pack(side=tk.LEFT, padx=8)

        buttons = ttk.Frame(self.root, padding=8)
        buttons.pack(fill=tk.X, padx=12, pady=(0, 12))

        style = ttk.Style()
        style.configure("Action.TButton", font=("Helvetica", 10, "bold"), padding=8)

        self.merge_button = ttk.Button(buttons, text="🔀 Multi-Merge", command=self.action_merge, style="Action.TButton")
        self.merge_button.pack(side=tk.LEFT, padx=4)
        self.cancel_button = ttk.Button(
            buttons, text="⏹ Cancel", command=self.action_cancel, style="Action.TButton", state="disabled"
        )
        self.cancel_button.pack(side=tk.LEFT, padx=4)

        paned = ttk.PanedWindow(self.root, orient=tk.VERTICAL)
        paned.pack(fill=tk.BOTH, expand=True, padx=12, pady=(0, 12))

        tree_frame = ttk.Frame(paned)
        paned.add(tree_frame, weight=1)
        ttk.Label(tree_frame, text="📊 Repositories", font=("Helvetica", 11, "bold")).pack(anchor=tk.W, pady=(0, 8))
        style.configure("Treeview", font=("Helvetica", 10), rowheight=28)
        style.configure("Treeview.Heading", font=("Helvetica", 10, "bold"))
        tree_container = ttk.Frame(tree_frame)
        tree_container.pack(fill=tk.BOTH, expand=True)
        self.tree = ttk.Treeview(
            tree_container,
            columns=("name", "branch", "path"),
            show="headings",
            selectmode="none",
            height=12,
        )
        self.tree.heading("name", text="Repository")
        self.tree.heading("branch", text="Current Branch")
        self.tree.heading("path", text="Path")
        self.tree.column("name", width=250, anchor=tk.W)
        self.tree.column("branch", width=220, anchor=tk.W)
        self.tree.column("path", width=400, anchor=tk.W)
        scrollbar = ttk.Scrollbar(tree_container, orient=tk.VERTICAL, command=self.tree.yview)
        self.tree.configure(yscrollcommand=scrollbar.set)
        self.tree.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)

        output_frame = ttk.Frame(paned)
        paned.add(output_frame, weight=1)
        ttk.Label(output_frame, text="📝 Output", font=("Helvetica", 11, "bold")).pack(anchor=tk.W, pady=(0, 8))
        output_container = ttk.Frame(output_frame)
        output_container.pack(fill=tk.BOTH, expand=True)
        self.output = scrolledtext.ScrolledText(
            output_container,
            height=12,
            state="disabled",
            font=("Courier", 10),
            bg="#1e1e1e",
            fg="#d4d4d4",
            insertbackground="white",
            wrap=tk.WORD,
        )
        self.output.pack(fill=tk.BOTH, expand=True)

        status_frame = ttk.Frame(self.root, relief=tk.SUNKEN, padding=(8, 4))
        status_frame.pack(fill=tk.X, side=tk.BOTTOM)

        self.status_var = tk.StringVar(value="✓ Ready")
        status_label = ttk.Label(
            status_frame,
            textvariable=self.status_var,
            anchor=tk.W,
            font=("Helvetica", 9),
            foreground="#0066cc"
        )
        status_label.pack(fill=tk.X)

    def refresh_repos(self) -> None:
        base_dir = Path(self.base_var.get()).expanduser()
        try:
            states = RepoScanner.scan(base_dir)
        except GitManagerError as exc:
            messagebox.showerror("Error", str(exc))
            return

        self.states = states
        for item in self.tree.get_children():
            self.tree.delete(item)
        for idx, state in enumerate(states):
            self.tree.insert("", tk.END, iid=str(idx), values=(state.name, state.current_branch, str(state.path)))

        self.status_var.set(f"✓ Loaded {len(states)} repositories from {base_dir}")

    def on_closing(self) -> None:
        """Handle window close event."""
        if self.monitor is not None:
            # A run is in progress; stop it at the next repository instead of leaving it half done.
            self.action_cancel()
            return
        self.closed = True
        self.root.destroy()

    def append_output(self, text: str) -> None:
        self.output.configure(state="normal")
        self.output.insert(tk.END, text + "\n")
        self.output.configure(state="disabled")
        self.output.see(tk.END)
        self.root.update()  # Force GUI refresh to show updates in real-time

    def quit_app(self) -> None:
        self.closed = True
        self.root.destroy()

    def action_cancel(self) -> None:
        if self.monitor is None:
            return
        self.monitor.cancel()
        self.status_var.set("⏳ Cancelling after the current repository...")

    def action_merge(self) -> None:
        if self.monitor is not None:
            return
        self.refresh_repos()
        if not self.states:
            messagebox.showinfo("No repositories", "No git repositories found in the base directory.")
            return

        try:
            known = RepoScanner.all_branch_names(self.states)
        except GitManagerError as exc:
            self.append_output(f"⚠️  Could not list branches: {exc}")
            known = set()
        dialog = MergeDialog(self.root, known, self.settings.load_merge_settings())
        self.root.wait_window(dialog)
        plan = dialog.result
        if plan is None:
            return

        base_dir = Path(self.base_var.get()).expanduser()
        self.settings.save_merge_settings(plan)
        self.settings.set_base_directory(str(base_dir))

        try:
            GitConfig.ensure_fleet_identity(self.states)
            merger = MultiMerger.for_fleet(
                self.states,
                plan,
                decider=TkDecision(self.root),
                notifier=OutputNotifier(self),
                build=ShellBuild(plan.build_command, base_dir) if plan.make else None,
                quit_fn=self.quit_app,
                preserver=WorkingTreeManager(),
            )
        except GitManagerError as exc:
            self.append_output(f"\n❌ Error: {str(exc)}\n")
            messagebox.showerror("Operation Failed", "An error occurred. Check the output panel for details.")
            return

        self.append_output(
            f"🕒 {now_display()} Merging {', '.join(plan.branches)} on temporary branch {merger.temp_branch}"
        )
        self.monitor = ProgressMonitor(on_tick=self.root.update, on_text=self.status_var.set)
        self.merge_button.configure(state="disabled")
        self.cancel_button.configure(state="normal")
        try:
            phase = merger.run(self.monitor)
        except GitManagerError as exc:
            if not self.closed:
                self.append_output(f"\n❌ Error: {str(exc)}\n")
                messagebox.showerror("Operation Failed", "An error occurred. Check the output panel for details.")
            return
        finally:
            self.monitor = None
            if not self.closed:
                self.merge_button.configure(state="normal")
                self.cancel_button.configure(state="disabled")

        if self.closed:
            return
        if phase is MergePhase.ABORTED:
            messagebox.showerror("Multi-Merge Failed", "The multi-merge did not complete. Check the output panel for details.")
        self.refresh_repos()


def main() -> None:
    configure_logging(os.environ.get("MULTI_MERGE_LOG_LEVEL", "WARNING"))
    root = tk.Tk()
    MultiMergeGUI(root)
    root.mainloop()


if __name__ == "__main__":
    main()
