"""Streamlit UI for the CCI business plan wizard."""

import json
import logging

import altair as alt
import pandas as pd
import streamlit as st

from businessplan_cci import (
    PAGES,
    amortization_schedule,
    completed_pages,
    is_export_ready,
    new_business_plan,
    progress_percentage,
    recompute_all,
    to_dict,
    validate_page,
)
from businessplan_cci.config import settings
from businessplan_cci.domain import (
    MAX_SOURCES_EXTERNES,
    SECTEURS_ACTIVITE,
    VILLES_COTE_IVOIRE,
    CostItem,
    FinancingSource,
    Machine,
    Owner,
)
from businessplan_cci.formatting import format_fcfa, format_percentage
from businessplan_cci.logic import break_even_reached, financing_coverage, gross_margin, net_margin
from businessplan_cci.storage import JsonPlanStore, PlanNotFoundError

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Couleurs CCI
CCI_BORDEAUX = "#751F20"
CCI_GRENAT = "#8B2635"
POSITIVE_COLOR = "#1d8a4e"
NEGATIVE_COLOR = "#b34025"

STATUTS = ["brouillon", "en_cours", "termine", "valide"]

store = JsonPlanStore(settings.DATA_DIR)

if "plan" not in st.session_state:
    st.session_state.plan = new_business_plan()
if "generation" not in st.session_state:
    st.session_state.generation = 0

st.set_page_config(
    page_title=settings.APP_TITLE,
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown(
    f"""
<style>
div.stButton > button:first-child {{
    background-color: {CCI_BORDEAUX} !important;
    color: white !important;
    border-color: {CCI_BORDEAUX} !important;
}}
div[data-testid="stMetricValue"] {{
    color: {CCI_GRENAT} !important;
    font-weight: 700;
}}
.cci-positive {{ color: {POSITIVE_COLOR}; font-weight: 600; }}
.cci-negative {{ color: {NEGATIVE_COLOR}; font-weight: 600; }}
</style>
""",
    unsafe_allow_html=True,
)


def _key(name: str) -> str:
    """Widget key scoped to the loaded plan, so loading a plan resets every widget."""
    return f"{st.session_state.generation}_{name}"


def _num(value) -> float:
    if value is None or pd.isna(value):
        return 0.0
    return float(value)


def _txt(value) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value)


def money_input(label: str, value: float, name: str) -> float:
    return float(
        st.number_input(label, value=float(value), step=5000.0, format="%.0f", key=_key(name))
    )


def editor(name: str, initial: pd.DataFrame, **kwargs) -> pd.DataFrame:
    """Data editor fed with a frame frozen at first render of the current plan."""
    source_key = _key(f"{name}_source")
    if source_key not in st.session_state:
        st.session_state[source_key] = initial
    return st.data_editor(
        st.session_state[source_key], key=_key(name), use_container_width=True, hide_index=True, **kwargs
    )


def signed_class(amount: float) -> str:
    return "cci-positive" if amount >= 0 else "cci-negative"


def show_signed(label: str, amount: float) -> None:
    st.markdown(
        f"{label}: <span class='{signed_class(amount)}'>{format_fcfa(amount)}</span>",
        unsafe_allow_html=True,
    )


# ==========================================
# PAGES
# ==========================================


def page_idee(plan) -> None:
    col1, col2 = st.columns(2)
    with col1:
        plan.title = st.text_input("Titre du projet", value=plan.title, key=_key("title"))
        sector_options = [""] + SECTEURS_ACTIVITE
        plan.sector = st.selectbox(
            "Secteur d'activité",
            sector_options,
            index=sector_options.index(plan.sector) if plan.sector in sector_options else 0,
            key=_key("sector"),
        )
    with col2:
        city_options = [""] + VILLES_COTE_IVOIRE
        plan.location = st.selectbox(
            "Localisation",
            city_options,
            index=city_options.index(plan.location) if plan.location in city_options else 0,
            key=_key("location"),
        )
        plan.status = st.selectbox("Statut", STATUTS, index=STATUTS.index(plan.status), key=_key("status"))

    idee = plan.idee
    idee.description = st.text_area(
        "Rédigez en quelques phrases ce que vous voulez faire", value=idee.description, key=_key("description")
    )
    idee.specificity = st.text_area(
        "Montrez pourquoi votre idée est spéciale", value=idee.specificity, key=_key("specificity")
    )
    st.markdown("**Propriétaire(s)**")
    owners = editor(
        "owners",
        pd.DataFrame(
            [{"Nom": o.name, "Fonction": o.role, "Expérience": o.experience} for o in idee.owners],
            columns=["Nom", "Fonction", "Expérience"],
        ),
        num_rows="dynamic",
    )
    idee.owners = [
        Owner(name=_txt(r["Nom"]), role=_txt(r["Fonction"]), experience=_txt(r["Expérience"]))
        for r in owners.to_dict("records")
    ]


def page_marche(plan) -> None:
    marche = plan.marche
    marche.product = st.text_area("Produit : qu'allez-vous offrir ?", value=marche.product, key=_key("product"))
    marche.price = st.text_input("Prix : à combien allez-vous vendre ?", value=marche.price, key=_key("price"))
    marche.place = st.text_input("Place : où allez-vous vous installer ?", value=marche.place, key=_key("place"))
    marche.promotion = st.text_area(
        "Promotion : comment allez-vous faire votre promotion ?", value=marche.promotion, key=_key("promotion")
    )
    marche.supplies = st.text_area(
        "Comment allez-vous vous approvisionner ?", value=marche.supplies, key=_key("supplies")
    )
    marche.competitors = st.text_area(
        "Comment allez-vous vous comporter face aux concurrents ?", value=marche.competitors, key=_key("competitors")
    )
    marche.clients = int(
        st.number_input("Clients par mois (estimation)", value=int(marche.clients), key=_key("clients"))
    )


def page_ressources(plan) -> None:
    ressources = plan.ressources
    ressources.equipment = st.text_area(
        "Comment allez-vous produire votre produit ou service ?", value=ressources.equipment, key=_key("equipment")
    )
    st.markdown("**Machines et équipements**")
    machines = editor(
        "machines",
        pd.DataFrame(
            [{"Nom": m.name, "Prix (FCFA)": m.price, "Description": m.description} for m in ressources.machines],
            columns=["Nom", "Prix (FCFA)", "Description"],
        ),
        num_rows="dynamic",
    )
    ressources.machines = [
        Machine(name=_txt(r["Nom"]), price=_num(r["Prix (FCFA)"]), description=_txt(r["Description"]))
        for r in machines.to_dict("records")
    ]
    st.caption(f"Total machines : {format_fcfa(sum(m.price for m in ressources.machines))}")
    ressources.registration = st.text_area(
        "Procédures administratives à satisfaire", value=ressources.registration, key=_key("registration")
    )
    col1, col2 = st.columns(2)
    with col1:
        ressources.employees.count = int(
            st.number_input("Nombre d'employés", value=int(ressources.employees.count), key=_key("emp_count"))
        )
    with col2:
        ressources.employees.monthly_cost = money_input(
            "Coût mensuel des employés (FCFA)", ressources.employees.monthly_cost, "emp_cost"
        )
    ressources.employees.details = st.text_area(
        "Détails des postes", value=ressources.employees.details, key=_key("emp_details")
    )


def page_couts(plan) -> None:
    couts = plan.couts_predemarrage
    col1, col2 = st.columns(2)
    with col1:
        couts.constitution = money_input("Constitution de l'entreprise", couts.constitution, "constitution")
        couts.license_fees = money_input("Autorisation / licence", couts.license_fees, "license_fees")
        couts.training = money_input("Formation", couts.training, "training")
    with col2:
        couts.project_info = money_input("Informations sur le projet", couts.project_info, "project_info")
        couts.business_plan_fee = money_input("Plan d'affaires", couts.business_plan_fee, "business_plan_fee")
    st.markdown("**Autres coûts**")
    extras = editor(
        "extras",
        pd.DataFrame(
            [{"Description": i.description, "Montant (FCFA)": i.amount} for i in couts.extras],
            columns=["Description", "Montant (FCFA)"],
        ),
        num_rows="dynamic",
    )
    couts.extras = [
        CostItem(description=_txt(r["Description"]), amount=_num(r["Montant (FCFA)"]))
        for r in extras.to_dict("records")
    ]
    recompute_all(plan)
    st.metric("Total des coûts avant démarrage", format_fcfa(couts.total))


def page_financement_global(plan) -> None:
    financement = plan.financement_global
    assets = financement.fixed_assets
    capital = financement.working_capital_3_months
    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**Immobilisations**")
        assets.land = money_input("Terrain", assets.land, "land")
        assets.construction = money_input("Construction", assets.construction, "construction")
        assets.equipment = money_input("Matériel", assets.equipment, "assets_equipment")
        assets.tooling = money_input("Outillage", assets.tooling, "tooling")
        assets.vehicles = money_input("Véhicules", assets.vehicles, "vehicles")
    with col2:
        st.markdown("**Fonds de roulement (3 mois)**")
        capital.salaries = money_input("Salaires", capital.salaries, "wc_salaries")
        capital.owner_draw = money_input("Prélèvement entrepreneur", capital.owner_draw, "owner_draw")
        capital.marketing_cost = money_input("Coûts marketing", capital.marketing_cost, "marketing_cost")
        capital.raw_materials = money_input("Matières premières", capital.raw_materials, "wc_raw_materials")
    financement.personal_contribution = money_input(
        "Apport personnel", financement.personal_contribution, "fg_personal_contribution"
    )

    financement = recompute_all(plan).financement_global
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Dépenses avant démarrage", format_fcfa(financement.pre_launch_expenses))
    m2.metric("Immobilisations", format_fcfa(financement.fixed_assets.total))
    m3.metric("Fonds de roulement", format_fcfa(financement.working_capital_3_months.total))
    m4.metric("Coût total du projet", format_fcfa(financement.total_project_cost))
    st.metric("Besoin de financement", format_fcfa(financement.financing_gap))


def page_plan_financement(plan) -> None:
    financing = plan.plan_financement
    financing.personal_contribution = money_input(
        "Apport personnel", financing.personal_contribution, "pf_personal_contribution"
    )
    st.markdown(f"**Sources externes** ({MAX_SOURCES_EXTERNES} maximum)")
    sources = editor(
        "sources",
        pd.DataFrame(
            [{"Source": s.source_name, "Montant (FCFA)": s.amount} for s in financing.sources],
            columns=["Source", "Montant (FCFA)"],
        ),
        num_rows="dynamic",
    )
    financing.sources = [
        FinancingSource(source_name=_txt(r["Source"]), amount=_num(r["Montant (FCFA)"]))
        for r in sources.to_dict("records")
    ]

    recompute_all(plan)
    coverage = financing_coverage(plan)
    m1, m2, m3 = st.columns(3)
    m1.metric("Total du financement", format_fcfa(coverage.total))
    m2.metric("Besoin de financement", format_fcfa(plan.financement_global.financing_gap))
    m3.metric("Taux de couverture", f"{coverage.coverage_ratio}%")
    if plan.financement_global.financing_gap > 0:
        st.progress(max(0, min(coverage.coverage_ratio, 100)) / 100.0)
    if coverage.fully_funded:
        st.success(f"Besoin couvert (excédent {format_fcfa(-coverage.shortfall)})")
    else:
        st.warning(f"Financement manquant : {format_fcfa(coverage.shortfall)}")


def page_remboursement(plan) -> None:
    remboursement = plan.remboursement_cashflow
    loan = remboursement.loan_plan
    st.markdown("**Plan de remboursement**")
    col1, col2, col3 = st.columns(3)
    with col1:
        loan.principal = money_input("A - Montant de l'emprunt", loan.principal, "principal")
    with col2:
        loan.duration_years = float(
            st.number_input("Durée (années)", value=float(loan.duration_years), step=1.0, key=_key("years"))
        )
    with col3:
        loan.annual_rate = float(
            st.number_input(
                "Taux d'intérêt annuel (%)", value=float(loan.annual_rate), step=0.5, key=_key("rate")
            )
        )

    cashflow = remboursement.monthly_cashflow
    st.markdown("**Cashflow mensuel**")
    col1, col2, col3 = st.columns(3)
    with col1:
        cashflow.estimated_sales = money_input("Ventes estimées", cashflow.estimated_sales, "cf_sales")
    with col2:
        cashflow.cost_of_sales = money_input("Coût des ventes", cashflow.cost_of_sales, "cf_cost")
    with col3:
        cashflow.fixed_charges = money_input("Charges fixes", cashflow.fixed_charges, "cf_fixed")

    recompute_all(plan)
    loan = remboursement.loan_plan
    cashflow = remboursement.monthly_cashflow

    m1, m2, m3, m4, m5 = st.columns(5)
    m1.metric("B - Durée (mois)", loan.duration_months)
    m2.metric("C - Taux mensuel", format_percentage(loan.monthly_rate * 100, 3))
    m3.metric("D - Mensualité", format_fcfa(loan.monthly_payment))
    m4.metric("E - Intérêt total", format_fcfa(loan.total_interest))
    m5.metric("F - Paiement total", format_fcfa(loan.total_payment))

    show_signed("Résultat brut", cashflow.gross_result)
    show_signed("Résultat net", cashflow.net_result)
    show_signed("Cashflow net après remboursement", cashflow.net_cashflow)

    rows = amortization_schedule(loan)
    if not rows:
        st.info("Aucun emprunt à rembourser.")
        return

    df = pd.DataFrame(
        {
            "Mois": [r.month for r in rows],
            "Mensualité": [r.payment for r in rows],
            "Intérêts": [r.interest_portion for r in rows],
            "Capital remboursé": [r.principal_portion for r in rows],
            "Capital restant": [r.remaining_principal for r in rows],
        }
    )
    tab_tableau, tab_graphique = st.tabs(["Tableau (12 mois)", "Capital restant"])
    with tab_tableau:
        first_year = df.head(12).copy()
        for col in ["Mensualité", "Intérêts", "Capital remboursé", "Capital restant"]:
            first_year[col] = first_year[col].map(format_fcfa)
        st.dataframe(first_year, hide_index=True, use_container_width=True)
    with tab_graphique:
        df["tooltip_restant"] = df["Capital restant"].map(format_fcfa)
        chart = (
            alt.Chart(df)
            .mark_area(color=CCI_BORDEAUX, opacity=0.6)
            .encode(
                x=alt.X("Mois:Q", title="Mois"),
                y=alt.Y("Capital restant:Q", title="Capital restant (FCFA)", axis=alt.Axis(format=",.0f")),
                tooltip=[alt.Tooltip("Mois:Q"), alt.Tooltip("tooltip_restant:N", title="Capital restant")],
            )
            .properties(height=350)
            .configure_view(strokeWidth=0)
        )
        st.altair_chart(chart, use_container_width=True)


_MONTH_COLUMNS = {
    "Ventes": ("total_sales", None),
    "Matières premières": ("cost_of_sales", "raw_materials"),
    "Autres coûts": ("cost_of_sales", "other_costs"),
    "Main d'oeuvre": ("cost_of_sales", "labor"),
    "Loyer": ("fixed_charges", "rent"),
    "Électricité": ("fixed_charges", "electricity"),
    "Eau": ("fixed_charges", "water"),
    "Téléphone": ("fixed_charges", "phone"),
    "Transport": ("fixed_charges", "transport"),
    "Salaires": ("fixed_charges", "salaries"),
    "Autres charges": ("fixed_charges", "other"),
}


def _month_value(month, section: str, attr):
    target = getattr(month, section)
    return target if attr is None else getattr(target, attr)


def page_compte_resultat(plan) -> None:
    compte = plan.compte_resultat
    rows = []
    for month in compte.months:
        row = {"Mois": month.month}
        for label, (section, attr) in _MONTH_COLUMNS.items():
            row[label] = _month_value(month, section, attr)
        rows.append(row)
    edited = editor("months", pd.DataFrame(rows), num_rows="fixed", disabled=["Mois"])

    for month, row in zip(compte.months, edited.to_dict("records")):
        for label, (section, attr) in _MONTH_COLUMNS.items():
            if attr is None:
                setattr(month, section, _num(row[label]))
            else:
                setattr(getattr(month, section), attr, _num(row[label]))

    recompute_all(plan)
    totals = compte.annual_totals
    m1, m2, m3, m4, m5 = st.columns(5)
    m1.metric("Ventes annuelles", format_fcfa(totals.total_sales))
    m2.metric("Coût des ventes", format_fcfa(totals.cost_of_sales))
    m3.metric("Résultat brut", format_fcfa(totals.gross_result))
    m4.metric("Charges fixes", format_fcfa(totals.fixed_charges))
    m5.metric("Résultat net", format_fcfa(totals.net_result))

    k1, k2, k3 = st.columns(3)
    k1.metric("Marge brute", format_percentage(gross_margin(totals)))
    k2.metric("Marge nette", format_percentage(net_margin(totals)))
    k3.metric("Seuil de rentabilité", "Atteint" if break_even_reached(totals) else "Non atteint")

    df = pd.DataFrame(
        {
            "Mois": [m.month for m in compte.months],
            "ordre": list(range(len(compte.months))),
            "Résultat net": [m.net_result for m in compte.months],
        }
    )
    df["tooltip_net"] = df["Résultat net"].map(format_fcfa)
    chart = (
        alt.Chart(df)
        .mark_bar(cornerRadius=3)
        .encode(
            x=alt.X("Mois:N", sort=alt.SortField("ordre"), title=None),
            y=alt.Y("Résultat net:Q", title="Résultat net (FCFA)", axis=alt.Axis(format=",.0f")),
            color=alt.condition(alt.datum["Résultat net"] >= 0, alt.value(POSITIVE_COLOR), alt.value(NEGATIVE_COLOR)),
            tooltip=[alt.Tooltip("Mois:N"), alt.Tooltip("tooltip_net:N", title="Résultat net")],
        )
        .properties(height=350)
        .configure_view(strokeWidth=0)
    )
    st.altair_chart(chart, use_container_width=True)


PAGE_RENDERERS = {
    1: page_idee,
    2: page_marche,
    3: page_ressources,
    4: page_couts,
    5: page_financement_global,
    6: page_plan_financement,
    7: page_remboursement,
    8: page_compte_resultat,
}

# ==========================================
# SIDEBAR: plan & navigation
# ==========================================
plan = st.session_state.plan

with st.sidebar:
    st.title(settings.APP_TITLE)

    plan_id = st.text_input("Identifiant du plan", value=plan.id or "", key=_key("plan_id"))
    col_load, col_save, col_new = st.columns(3)
    with col_load:
        if st.button("Charger", use_container_width=True):
            try:
                st.session_state.plan = store.load(plan_id)
                st.session_state.generation += 1
                st.rerun()
            except PlanNotFoundError as exc:
                st.error(str(exc))
            except ValueError as exc:
                logger.warning("Chargement refusé pour %r: %s", plan_id, exc)
                st.error(str(exc))
    with col_save:
        if st.button("Enregistrer", use_container_width=True):
            try:
                store.save(plan_id, recompute_all(plan))
                st.success("Plan enregistré.")
            except ValueError as exc:
                st.error(str(exc))
    with col_new:
        if st.button("Nouveau", use_container_width=True):
            st.session_state.plan = new_business_plan()
            st.session_state.generation += 1
            st.rerun()

    existing = store.list_ids()
    if existing:
        st.caption("Plans enregistrés : " + ", ".join(existing))

    st.divider()

# ==========================================
# MAIN CONTENT
# ==========================================
# the step radio is drawn below, once the form has updated the plan
current_page = st.session_state.get("current_page", PAGES[0].id)
page = next(p for p in PAGES if p.id == current_page)
st.title(f"{page.id}. {page.title}")
st.caption(page.description)

PAGE_RENDERERS[current_page](plan)
recompute_all(plan)

result = validate_page(current_page, plan)
if result.is_valid:
    st.success("Étape complète, vous pouvez passer à l'étape suivante.")
for error in result.errors:
    st.error(error)
for warning in result.warnings:
    st.warning(warning)

with st.sidebar:
    done = completed_pages(plan)
    page_labels = {p.id: f"{'✅' if p.id in done else '⬜'} {p.id}. {p.title}" for p in PAGES}
    st.radio("Étapes", options=[p.id for p in PAGES], format_func=page_labels.get, key="current_page")

    progress = progress_percentage(plan)
    st.progress(progress / 100.0)
    st.caption(f"{len(done)} / {len(PAGES)} étapes • {progress}% complété")
    if is_export_ready(plan):
        st.download_button(
            "Exporter (JSON)",
            data=json.dumps(to_dict(plan), ensure_ascii=False, indent=2),
            file_name=f"{plan_id or 'business_plan'}.json",
            mime="application/json",
            use_container_width=True,
        )
    else:
        st.caption("Complétez toutes les étapes pour exporter.")
