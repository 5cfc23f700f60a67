"""
Visualization components for the flow metrics dashboard.
"""

from typing import Dict, List

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from ..core.utils import CURRENCY_SYMBOLS


def _empty_figure(title: str, message: str) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        xref="paper", yref="paper",
        x=0.5, y=0.5,
        showarrow=False,
        font=dict(size=14, color="gray")
    )
    fig.update_layout(title=title, height=320, xaxis_visible=False, yaxis_visible=False)
    return fig


def plot_revenue_series(series: List[Dict], currency: str = "USD", title: str = "Revenue") -> go.Figure:
    """
    Daily revenue line chart.

    Args:
        series: Points with date and total_revenue keys
        currency: ISO currency code for the axis prefix
        title: Chart title

    Returns:
        Plotly figure
    """
    if not series:
        return _empty_figure(title, "No revenue data for this range yet")

    df = pd.DataFrame(series)
    df['date'] = pd.to_datetime(df['date'], errors='coerce')
    df = df.dropna(subset=['date']).sort_values('date')
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")

    fig = go.Figure(
        go.Scatter(
            x=df['date'],
            y=df['total_revenue'],
            mode='lines+markers',
            name='Revenue',
            line=dict(color='#6C5CE7', width=2),
            fill='tozeroy',
            hovertemplate=f'%{{x|%b %d}}<br>{symbol}%{{y:,.2f}}<extra></extra>'
        )
    )
    fig.update_layout(
        title=title,
        height=360,
        yaxis_tickprefix=symbol,
        hovermode='x unified',
        margin=dict(l=20, r=20, t=50, b=20)
    )
    return fig


def plot_list_size(timeseries: List[Dict]) -> go.Figure:
    """Cumulative profile count over the last week."""
    if not timeseries:
        return _empty_figure("List size", "No profiles yet")

    df = pd.DataFrame(timeseries)
    df['date'] = pd.to_datetime(df['date'], errors='coerce')
    fig = px.area(df, x='date', y='total_profiles', title='List size (last 7 days)')
    fig.update_layout(height=300, yaxis_title='Profiles', xaxis_title=None)
    return fig


def plot_top_flows(flows: List[Dict]) -> go.Figure:
    """Horizontal bar chart of flows by emails sent."""
    if not flows:
        return _empty_figure("Top flows", "No flows synced")

    df = pd.DataFrame(flows)
    df = df.sort_values('emails_sent_30d', ascending=True)
    fig = go.Figure(
        go.Bar(
            x=df['emails_sent_30d'],
            y=df['flow_name'],
            orientation='h',
            marker_color='steelblue',
            customdata=df['status'],
            hovertemplate='<b>%{y}</b><br>Sent: %{x:,}<br>Status: %{customdata}<extra></extra>'
        )
    )
    fig.update_layout(title='Top flows (30 days)', height=320, xaxis_title='Emails sent')
    return fig


def plot_profile_status(active: int, suppressed: int, total: int) -> go.Figure:
    """Donut of active vs suppressed vs other profiles."""
    other = max(0, total - active - suppressed)
    fig = px.pie(
        names=['Active', 'Suppressed', 'Other'],
        values=[active, suppressed, other],
        title='Profile status',
        hole=0.4
    )
    fig.update_traces(textposition='inside', textinfo='percent+label')
    fig.update_layout(height=320)
    return fig
