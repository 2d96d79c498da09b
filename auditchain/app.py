import logging
from typing import Optional

from rich.markup import escape
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Header, Label, Markdown, Static

from auditchain import config
from auditchain.__version__ import __version__
from auditchain.core.model import CanonicalRow, Resolution
from auditchain.core.registry import enrich_latest_versions
from auditchain.core.report import analyze_vulnerabilities, minimal_upgrade_summary, write_csv

SEVERITY_STYLES = {
    "critical": "bold magenta",
    "high": "bold red",
    "moderate": "yellow",
    "low": "green",
}


def configure_file_logging(level=logging.DEBUG) -> None:
    # The terminal belongs to textual; logs go to a file
    logging.basicConfig(
        filename=config.LOG_FILE,
        level=level,
        filemode="w",
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


class AdvisoryScreen(ModalScreen):
    """Modal with the full chain and advisory of one row."""

    DEFAULT_CSS = """
    AdvisoryScreen {
        align: center middle;
        background: rgba(0, 0, 0, 0.8);
    }
    #dialog {
        padding: 0 1;
        width: 85%;
        height: 70%;
        border: heavy $error;
        background: $surface;
        layout: vertical;
    }
    #title {
        text-align: center;
        text-style: bold;
        background: $error;
        color: white;
        width: 100%;
        padding: 1;
    }
    #content-scroll {
        height: 1fr;
        margin: 1 0;
        overflow-y: auto;
    }
    #close-btn {
        width: 100%;
        dock: bottom;
    }
    """

    def __init__(self, row: CanonicalRow) -> None:
        super().__init__()
        self.row = row

    def compose(self) -> ComposeResult:
        yield Vertical(
            Label(f"[!] {escape(self.row.key)}", id="title"),
            VerticalScroll(Markdown(self._build_report()), id="content-scroll"),
            Button("Close (Esc)", variant="error", id="close-btn"),
            id="dialog",
        )

    def _build_report(self) -> str:
        row = self.row
        md_output = [
            f"# {row.package} {row.version}\n",
            f"**Severity**: {row.severity or '_unknown_'}\n",
            "### Dependency chain\n",
        ]
        for depth, name in enumerate(row.parent_chain):
            md_output.append(f"{'  ' * depth}- {name}")
        if not row.parent_chain:
            md_output.append("_Direct install_")

        md_output.append("\n### Links\n")
        if row.advisory_url:
            md_output.append(f"- **Advisory**: [{row.advisory_url}]({row.advisory_url})")
        npm_url = f"https://www.npmjs.com/package/{row.package}"
        md_output.append(f"- **npm**: [{npm_url}]({npm_url})")

        if row.latest_version:
            md_output.append(f"\n**Latest release**: {row.latest_version}")
        return "\n".join(md_output)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss()

    def key_escape(self) -> None:
        self.dismiss()


class AuditApp(App):
    TITLE = "auditchain"
    SUB_TITLE = f"v{__version__}"

    DEFAULT_CSS = """
    Screen { layout: vertical; }

    #info-bar {
        height: 3;
        dock: top;
        background: $surface;
        border-bottom: solid $primary;
        align: left middle;
        padding: 0 1;
    }

    .info-label {
        width: auto;
        height: 1;
        padding: 0 2;
        color: $text;
    }

    #table-container { height: 2fr; margin: 0 1; }
    #summary-container { height: 1fr; margin: 0 1; border-top: solid $primary; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("e", "export_csv", "Export CSV"),
        Binding("s", "toggle_summary", "Summary"),
    ]

    show_analysis: bool = False

    def __init__(self, resolution: Resolution, enrich: bool = True, csv_path: Optional[str] = None) -> None:
        super().__init__()
        self.resolution = resolution
        self.enrich = enrich
        self.csv_path = csv_path or config.CSV_FILE
        self.latest_status = "pending" if enrich else "off"

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with Horizontal(id="info-bar"):
            yield Label("", id="lbl-advisories", classes="info-label")
            yield Label("", id="lbl-installs", classes="info-label")
            yield Label("", id="lbl-parents", classes="info-label")
            yield Label("", id="lbl-latest", classes="info-label")

        with Container(id="table-container"):
            yield DataTable(id="vuln-table", cursor_type="row", zebra_stripes=True)

        with VerticalScroll(id="summary-container"):
            yield Static("", id="summary")

        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#vuln-table", DataTable)
        table.add_columns("Vulnerable Package", "Version", "Parent Chain", "Severity", "Advisory URL", "Latest")
        self.render_rows()
        self.render_summary()
        self.update_dashboard_ui()
        table.focus()

        if self.enrich and self.resolution.rows:
            self.enrich_rows()

    # --- ACTIONS ---

    def action_cursor_down(self) -> None:
        self.query_one("#vuln-table", DataTable).action_cursor_down()

    def action_cursor_up(self) -> None:
        self.query_one("#vuln-table", DataTable).action_cursor_up()

    def action_toggle_summary(self) -> None:
        self.show_analysis = not self.show_analysis
        self.render_summary()

    def action_export_csv(self) -> None:
        try:
            write_csv(self.resolution.rows, self.csv_path, include_latest=self.latest_status == "done")
        except OSError as e:
            logging.exception("CSV export failed:")
            self.notify(f"Export failed: {e}", severity="error")
            return
        self.notify(f"Saved CSV to {self.csv_path}", severity="information")

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        index = int(event.row_key.value)
        self.push_screen(AdvisoryScreen(self.resolution.rows[index]))

    # --- LOGIC ---

    def update_dashboard_ui(self) -> None:
        res = self.resolution
        self.query_one("#lbl-advisories", Label).update(f"[b]Advisories:[/b] [red]{len(res.vulnerable)}[/]")
        self.query_one("#lbl-installs", Label).update(f"[b]Installs:[/b] [blue]{len(res.rows)}[/]")
        self.query_one("#lbl-parents", Label).update(f"[b]Upgrade targets:[/b] [cyan]{len(res.groups)}[/]")
        self.query_one("#lbl-latest", Label).update(f"[b]Latest:[/b] [dim]{self.latest_status}[/]")

    def update_progress(self, current: int, total: int) -> None:
        self.latest_status = f"{current}/{total}"
        self.update_dashboard_ui()

    @work(thread=False)
    async def enrich_rows(self) -> None:
        logging.info("Enrichment worker started.")
        await enrich_latest_versions(self.resolution.rows, on_progress=self.update_progress)
        self.latest_status = "done"
        self.render_rows()
        self.update_dashboard_ui()

    def render_rows(self) -> None:
        table = self.query_one("#vuln-table", DataTable)
        table.clear()

        for index, row in enumerate(self.resolution.rows):
            style = SEVERITY_STYLES.get(row.severity.lower(), "")
            severity = f"[{style}]{escape(row.severity)}[/]" if style else escape(row.severity)
            table.add_row(
                escape(row.package),
                escape(row.version),
                escape(row.chain_label),
                severity,
                escape(row.advisory_url),
                escape(row.latest_version),
                key=str(index),
            )

    def render_summary(self) -> None:
        if self.show_analysis:
            text = analyze_vulnerabilities(self.resolution.rows)
        else:
            text = minimal_upgrade_summary(self.resolution.groups)
        self.query_one("#summary", Static).update(escape(text))
