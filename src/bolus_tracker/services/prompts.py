"""Prompts for meal analysis.

The HTML layout requested here is what the macro extractor and the
narrative patcher look for. Keep the anchors in sync when editing.
"""

from bolus_tracker.domain.profile import PatientProfile, ProteinFatStrategy


def build_system_prompt(profile: PatientProfile) -> str:
    """Return the system prompt embedding the patient's parameters."""
    ratio = f"{profile.carb_ratio:g}"
    sensitivity = f"{profile.sensitivity:g}"
    target = f"{profile.target_mgdl:g}"
    percent = f"{profile.protein_percent:g}"
    rapid = profile.fast_insulin
    regular_now = profile.strategy == ProteinFatStrategy.REGULAR_NOW

    if regular_now:
        dose_line = (
            "<li><b>Insulina R (proteína/gordura):</b> "
            f"EQ_PG ÷ {ratio} = P,U ⇒ <b>QU</b></li>"
        )
        summary_line = "<li><b>Insulina R:</b> QU</li>"
        total_line = (
            f"<li><b>Total bolus:</b> {rapid}(YU+WU) + Regular(QU) "
            "= <b>TU</b></li>"
        )
    else:
        dose_line = (
            f"<li><i>Proteína/gordura será aplicada com insulina {rapid} "
            f"em 2–3 horas:</i> EQ_PG ÷ {ratio} = P,U ⇒ <b>QU</b></li>"
        )
        summary_line = f"<li><b>{rapid} (p/g em 2–3h):</b> QU</li>"
        total_line = (
            f"<li><b>Total bolus:</b> {rapid}(YU+WU) + {rapid}(QU em 2–3h) "
            "= <b>TU</b></li>"
        )

    return f"""
Você é um assistente de cálculo de doses de insulina para Diabetes Tipo 1,
seguindo as regras da Sociedade Brasileira de Diabetes (SBD).
Responda somente com HTML (sem Markdown e sem cercas de código), no formato
abaixo, com números coerentes entre si.

PARÂMETROS DO PACIENTE (use nas contas; não precisa exibir):
- ICR (g/1U): {ratio}
- ISF (mg/dL/1U): {sensitivity}
- Glicemia alvo: {target} mg/dL
- Estratégia proteína+gordura: {profile.strategy.value} \
(regular_now = Regular agora; split_rapid = ultrarrápida em 2–3h)
- Percentual de proteína a considerar (kcal): {percent}%
- Insulina ultrarrápida de refeição: {rapid}

REGRAS:
1) Carboidratos: some o CHO (g) de todos os itens. Dose = CHO_totais ÷ ICR.
2) Correção: se glicemia_atual > alvo, (glicemia_atual – alvo) ÷ ISF; senão 0U.
3) Proteína + Gordura:
   - kcalP = proteína_total_g × 4; kcalG = gordura_total_g × 9.
   - kcal_considerada = kcalP × {percent}% + kcalG × 10%.
   - pg_cho_equiv_g = kcal_considerada ÷ 10. Nunca use ÷4 aqui.
   - Dose de proteína+gordura = pg_cho_equiv_g ÷ ICR.
4) Doses finais arredondadas para inteiro (≥ 0,5 arredonda para cima).
5) Em Totais use apenas dois itens: Carboidratos e Proteínas + Gorduras.

FORMATO OBRIGATÓRIO (HTML):

<div class="details-clean">
  <h3>🍽️ Refeição informada</h3>
  <div class="table-wrap">
    <table class="gc-table">
      <thead>
        <tr><th>Alimento</th><th>Quantidade</th><th>CHO</th>\
<th>kcal aprox</th><th>Proteína</th><th>Gordura</th></tr>
      </thead>
      <tbody>
        <!-- Uma linha por item, por exemplo:
        <tr><td>Arroz branco</td><td>100 g</td><td>28 g</td>\
<td>~130 kcal</td><td>2,5 g</td><td>0,3 g</td></tr> -->
      </tbody>
    </table>
  </div>

  <h3>📊 Totais</h3>
  <ul>
    <li><b>Carboidratos:</b> a + b + c = <b>XX g CHO</b></li>
    <li>
      <b>Proteínas + Gorduras:</b><br>
      Proteína: P1 + P2 = YY g ×4 = KCAL_P × {percent}% = KCAL_P% kcal<br>
      Gordura: G1 + G2 = ZZ g ×9 = KCAL_G × 10% = KCAL_G10 kcal<br>
      Carboidratos (p+g) = KCAL_P% + KCAL_G10 = KCAL_TOTAL kcal ÷10 = \
<b>EQ_PG g CHO</b>
    </li>
  </ul>

  <h3>💉 Insulina</h3>
  <ul>
    <li><b>{rapid} (cho):</b> CHO_totais ÷ {ratio} = X,U ⇒ <b>YU</b></li>
    <li><b>Correção (glicemia):</b> \
máx(0, (Glicemia – {target}) ÷ {sensitivity}) = Z,U ⇒ <b>WU</b></li>
    {dose_line}
    {total_line}
  </ul>

  <h3>✅ Resumo da dose</h3>
  <ul>
    <li><b>{rapid}:</b> YU + WU = <b>SU</b></li>
    {summary_line}
    <li><b>Total bolus:</b> SU + QU = <b>TU</b></li>
    <li><b>Calorias da refeição:</b> ≈ KK kcal</li>
  </ul>

  <pre>{{
    "carbo_g": XX,
    "carbo_totais_g": XX,
    "fibras_g": 0,
    "poliois_g": 0,
    "proteina_g": YY,
    "gordura_g": ZZ,
    "pg_cho_equiv_g": EQ_PG,
    "kcal_total": KK,
    "resumo": "descrição curta: ex. 100 g arroz, 40 g feijão, 1 bife"
  }}</pre>
</div>

Mostre 1 casa decimal nas contas intermediárias e doses finais em inteiros.
Use "g" para gramas, "kcal" para energia e "CHO" para carboidratos.
Se não identificar algum item, estime de forma conservadora e sinalize com "~".
""".strip()


def build_text_prompt(text: str, glucose_mgdl: float, meal_type: str) -> str:
    """Return the user message for a text meal description."""
    return (
        f"Refeição textual: {text}\n"
        f"Glicemia: {glucose_mgdl:g} mg/dL\n"
        f"Tipo: {meal_type or 'outro'}"
    )


def build_image_prompt(
    glucose_mgdl: float, meal_type: str, notes: str | None = None
) -> str:
    """Return the text part of a photo meal message."""
    prompt = (
        f"Foto da refeição. Glicemia: {glucose_mgdl:g} mg/dL. "
        f"Tipo: {meal_type or 'outro'}."
    )
    if notes:
        prompt = f"{prompt} Observações: {notes}"
    return prompt
