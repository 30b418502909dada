#!/usr/bin/env python
"""Generate charts from an attack file written by detect_mev.py."""
import argparse
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from mevsentry.processing.frames import read_frame

# Set style
sns.set_style("whitegrid")
plt.rcParams['figure.figsize'] = (14, 6)
plt.rcParams['font.size'] = 11

TYPE_COLORS = {"sandwich": "darkred", "frontrunning": "steelblue"}


def load_attacks(path: Path) -> pd.DataFrame:
    attacks = read_frame(path)
    # Profits are exported as decimal strings; float is fine for plotting.
    attacks['profit_eth'] = pd.to_numeric(attacks['profit_eth'], errors='coerce').fillna(0.0)
    attacks['timestamp'] = pd.to_numeric(attacks['timestamp'], errors='coerce')
    attacks['datetime'] = pd.to_datetime(attacks['timestamp'], unit='s')
    return attacks


def plot_profit_distribution(attacks: pd.DataFrame, out_dir: Path) -> Path:
    fig, axes = plt.subplots(1, 2, figsize=(16, 5))

    for attack_type, group in attacks.groupby('attack_type'):
        axes[0].hist(group['profit_eth'], bins=50, alpha=0.6, edgecolor='black',
                     color=TYPE_COLORS.get(attack_type, 'gray'), label=attack_type)
    axes[0].set_xlabel('Estimated Profit (ETH)', fontsize=12, fontweight='bold')
    axes[0].set_ylabel('Count', fontsize=12, fontweight='bold')
    axes[0].set_title('Profit Distribution by Attack Type', fontsize=14, fontweight='bold')
    axes[0].legend()
    axes[0].grid(axis='y', alpha=0.3)

    sorted_profit = np.sort(attacks['profit_eth'].to_numpy())
    cumulative = np.arange(1, len(sorted_profit) + 1) / len(sorted_profit) * 100
    axes[1].plot(sorted_profit, cumulative, linewidth=2, color='darkgreen')
    axes[1].set_xlabel('Estimated Profit (ETH)', fontsize=12, fontweight='bold')
    axes[1].set_ylabel('Cumulative Percentage (%)', fontsize=12, fontweight='bold')
    axes[1].set_title('Cumulative Profit Distribution', fontsize=14, fontweight='bold')
    axes[1].grid(alpha=0.3)

    path = out_dir / 'profit_distribution.png'
    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close()
    return path


def plot_top_attackers(attacks: pd.DataFrame, out_dir: Path, top_n: int = 10) -> Path:
    attacker_stats = attacks.groupby('attacker').agg(
        attack_count=('frontrun_tx', 'count'),
        total_profit=('profit_eth', 'sum'),
        sandwich_share=('attack_type', lambda s: (s == 'sandwich').mean()),
    ).sort_values('total_profit', ascending=False)

    top = attacker_stats.head(top_n)

    fig, axes = plt.subplots(1, 2, figsize=(16, 6))

    colors = plt.cm.RdYlGn(np.linspace(0.3, 0.9, len(top)))
    axes[0].barh(range(len(top)), top['total_profit'], color=colors, edgecolor='black')
    axes[0].set_yticks(range(len(top)))
    axes[0].set_yticklabels([f"{addr[:6]}...{addr[-4:]}" for addr in top.index])
    axes[0].set_xlabel('Total Estimated Profit (ETH)', fontsize=12, fontweight='bold')
    axes[0].set_title(f'Top {len(top)} Attackers by Profit', fontsize=14, fontweight='bold')
    axes[0].grid(axis='x', alpha=0.3)
    axes[0].invert_yaxis()

    for i, v in enumerate(top['total_profit']):
        axes[0].text(v, i, f' {v:,.4f} ETH', va='center', fontsize=10)

    axes[1].scatter(top['attack_count'], top['total_profit'],
                    s=200, alpha=0.6, c=top['sandwich_share'],
                    cmap='RdYlGn_r', vmin=0, vmax=1, edgecolors='black', linewidth=1.5)
    axes[1].set_xlabel('Number of Attacks', fontsize=12, fontweight='bold')
    axes[1].set_ylabel('Total Profit (ETH)', fontsize=12, fontweight='bold')
    axes[1].set_title('Attack Frequency vs Profit', fontsize=14, fontweight='bold')
    axes[1].grid(alpha=0.3)

    cbar = plt.colorbar(axes[1].collections[0], ax=axes[1])
    cbar.set_label('Sandwich Share', fontsize=11)

    path = out_dir / 'top_attackers.png'
    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close()
    return path


def plot_timeline(attacks: pd.DataFrame, out_dir: Path) -> Path:
    fig, ax = plt.subplots(figsize=(16, 6))

    hourly = (
        attacks.assign(hour=attacks['datetime'].dt.floor('h'))
        .groupby(['hour', 'attack_type'])
        .size()
        .unstack(fill_value=0)
    )
    for attack_type in hourly.columns:
        ax.plot(hourly.index, hourly[attack_type], linewidth=2, marker='o', markersize=4,
                color=TYPE_COLORS.get(attack_type, 'gray'), label=attack_type)
    ax.set_xlabel('Time', fontsize=12, fontweight='bold')
    ax.set_ylabel('Detections per Hour', fontsize=12, fontweight='bold')
    ax.set_title('MEV Detection Timeline', fontsize=14, fontweight='bold')
    ax.legend()
    ax.grid(alpha=0.3)

    path = out_dir / 'detection_timeline.png'
    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close()
    return path


def main() -> int:
    parser = argparse.ArgumentParser(description="Plot detected MEV attacks")
    parser.add_argument("--input", "-i", default="data/results/mev_attacks.parquet",
                        help="Attack file produced by detect_mev.py")
    parser.add_argument("--out-dir", default="images", help="Directory for PNG output")
    args = parser.parse_args()

    print("Loading data...")
    attacks = load_attacks(Path(args.input))
    print(f"Loaded {len(attacks):,} attacks")
    if attacks.empty:
        print("Nothing to plot")
        return 0

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    generated = []
    for plot in (plot_profit_distribution, plot_top_attackers, plot_timeline):
        print(f"\nGenerating {plot.__name__.removeprefix('plot_').replace('_', ' ')} plot...")
        path = plot(attacks, out_dir)
        print(f"✓ Saved: {path}")
        generated.append(path)

    print("\n" + "="*60)
    print("VISUALIZATION SUMMARY")
    print("="*60)
    print(f"Attacks:                  {len(attacks):,}")
    print(f"Sandwiches:               {(attacks['attack_type'] == 'sandwich').sum():,}")
    print(f"Front-runs:               {(attacks['attack_type'] == 'frontrunning').sum():,}")
    print(f"Unique Attackers:         {attacks['attacker'].nunique()}")
    print(f"Total Estimated Profit:   {attacks['profit_eth'].sum():,.6f} ETH")
    print("="*60)
    print("\nGenerated files:")
    for path in generated:
        print(f"  - {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
