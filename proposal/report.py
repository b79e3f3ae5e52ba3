from rich.console import Console
from rich.table import Table

from proposal.state_models import ProposalView


class EscalationReport:
    """
    Registra cada renderização do widget durante a demonstração e imprime
    a escalada do botão NÃO em uma tabela no console.
    """

    def __init__(self) -> None:
        self.rows: list[tuple[str, ProposalView]] = []

    def record(self, action: str, view: ProposalView) -> None:
        self.rows.append((action, view))

    def print_report(self, bursts_fired: int, console: Console | None = None) -> None:
        """Imprime a tabela da escalada e o resumo da celebração."""
        console = console or Console(force_terminal=True)
        table = Table(title="Escalada da Proposta")
        table.add_column("Acao", justify="left")
        table.add_column("View", justify="left")
        table.add_column("Botao NAO", justify="left")
        table.add_column("Escala SIM", justify="right")
        table.add_column("Posicao NAO", justify="right")

        for action, view in self.rows:
            if view.kind == "success":
                table.add_row(action, "[bold magenta]success[/bold magenta]", "-", "-", "-")
                continue
            scale = f"[bold red]{view.yes_scale} (overlay)[/bold red]" if view.yes_overlay else str(view.yes_scale)
            table.add_row(
                action,
                view.kind,
                view.no_message,
                scale,
                f"({view.no_position.x}, {view.no_position.y})",
            )

        console.print(table)
        console.print(f"[bold green]Rajadas de confete disparadas: {bursts_fired}[/bold green]")
