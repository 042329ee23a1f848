import plotly.express as px
import pandas as pd

def export_hit_rates(levels, path: str):
    """Writes an HTML bar chart of hits and misses per cache level."""
    if not levels or not any(s['total_requests'] for s in levels.values()):
        with open(path, "w") as f:
            f.write("<h1>Cache Hit/Miss Chart</h1><p>No data to display.</p>")
        return

    rows = []
    for name, s in levels.items():
        rows.append({'level': name, 'outcome': 'hit', 'count': s['hit_count'], 'rate': s['hit_rate']})
        rows.append({'level': name, 'outcome': 'miss', 'count': s['miss_count'], 'rate': s['miss_rate']})
    df = pd.DataFrame(rows)
    df['count'] = pd.to_numeric(df['count'], errors='coerce').fillna(0)

    fig = px.bar(
        df,
        x="level",
        y="count",
        color="outcome",
        barmode="group",
        text="count",
        hover_data=['rate'],
        title="Cache Hits and Misses per Level",
        labels={"level": "Memory Level", "count": "Requests", "outcome": "Outcome"}
    )
    fig.update_layout(
        font=dict(family="Courier New, monospace", size=12),
        legend_title="Outcome"
    )

    fig.write_html(path, include_plotlyjs="cdn", full_html=True)

def export_cycles_ascii(cycles):
    """Renders cycles per operation kind as horizontal ASCII bars."""
    if not cycles:
        return "No cycles recorded."

    max_cycles = max(cycles.values(), default=0)
    if max_cycles == 0:
        return "No cycles recorded."

    scale = 60.0 / max_cycles # Scale to 60 characters width

    chart = "Cycles per Operation Kind (ASCII Chart)\n"
    chart += ("-" * 80) + "\n"
    for op, value in cycles.items():
        bar = '#' * int(value * scale)
        chart += f"{str(op):>4} |{bar:<60}| {value}\n"
    chart += ("-" * 80) + "\n"

    return chart
