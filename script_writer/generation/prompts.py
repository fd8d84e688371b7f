"""Prompt text for outline synthesis and episode batches."""

from ..models.batch import BatchRequest
from ..models.script import AudienceMode, ScriptStyle, StyleParameters

MODE_LABELS = {
    "zh": {AudienceMode.MALE: "男频", AudienceMode.FEMALE: "女频"},
    "en": {AudienceMode.MALE: "male-audience", AudienceMode.FEMALE: "female-audience"},
}

OUTLINE_SYSTEM = {
    "zh": """你是一位顶级动漫爽剧编剧专家。你的任务是基于原著产出全案大纲。

【核心创作规范】：
1. 总集数规划：全剧严格控制在 65-80 集。
2. 阶段结构：第一阶段固定 10 集，后续根据爽点分布划分为多个阶段（每阶段8-12集）。
3. 受众对焦：{mode}模式。
4. 提炼爽点主轴：明确主角弧光、反杀节点、情绪高潮、金句爆点。""",
    "en": """You are a senior screenwriter for fast-paced animated short dramas. Produce a complete adaptation outline from the source novel.

Rules:
1. The series runs 65-80 episodes in total.
2. Phase 1 is exactly 10 episodes; later phases hold 8-12 episodes each, split at payoff beats.
3. Target audience: {mode}.
4. Extract the payoff spine: protagonist arc, reversal beats, emotional peaks, quotable lines.""",
}

STYLE_INSTRUCTIONS = {
    "zh": {
        ScriptStyle.EMOTIONAL: "【流派：情绪流】节奏要爽快，情绪一定要强，反派可以更极端，怎么爽怎么来。",
        ScriptStyle.WITTY: "【流派：非情绪流】文风诙谐幽默多玩热梗，但节奏不能拖，每一集都要有小卡点，对话有机锋。",
    },
    "en": {
        ScriptStyle.EMOTIONAL: "Style: emotional. Fast pacing, maximal emotional intensity, villains drawn in bold strokes.",
        ScriptStyle.WITTY: "Style: witty. Humorous and meme-aware, never slow; every episode ends on a small hook with sharp dialogue.",
    },
}

OPENING_INSTRUCTIONS = {
    "zh": """【开篇建模指令】：
1. 3句内必须进入冲突。
2. 通过正在发生的矛盾带出设定，绝不长篇大论。
3. 用主角的第一反应快速立住人设。""",
    "en": """Opening rules:
1. Enter the conflict within three sentences.
2. Reveal the setting through an ongoing clash, never through exposition.
3. Establish the protagonist through their first reaction.""",
}

CONTINUATION_INSTRUCTIONS = {
    "zh": """【硬核衔接指令】：
1. 必须深度解析[前序剧集结尾]的最后一段剧情与悬念。
2. 本批次第1集从上一集结束的精确时间点、物理位置无缝延续。
3. 严禁转场感，必须是动作与台词的无缝延续。""",
    "en": """Continuation rules:
1. Study the last scene and cliffhanger in [Previous ending].
2. The first episode of this batch resumes at the exact moment and place the previous one ended.
3. No scene-transition feel; continue the action and dialogue seamlessly.""",
}

CONSISTENCY_INSTRUCTIONS = {
    "zh": """【改编一致性监控】：
1. 必须参考[之前批次的改编记录]，严禁突然出现已被删减的角色。
2. 若原著人物重要但之前未交代，须在此批次安排合理的初次登场。
3. 确保第一场戏的人物、位置与[前序剧集结尾]完全对齐。""",
    "en": """Adaptation consistency:
1. Respect [Adaptation history]; never bring back characters that were cut.
2. Important characters not yet introduced need a proper first appearance in this batch.
3. The first scene's characters and location must match [Previous ending].""",
}

BATCH_SYSTEM = {
    "zh": """你是一位专注爆款漫剧的首席编剧。任务：生成阶段 {phase} 的剧本（第 {start} 至 {end} 集）。
受众：{mode}。

{consistency}
{style}
{continuity}

【硬性要求】：
- 输出恰好 {count} 集，units 中的 number 依次为 {start} 到 {end}。
- 每一集字数 600-800 字，输出纯净剧本，不使用 Markdown。
- 参考布局：[{layout}]""",
    "en": """You are the head writer of a hit animated short-drama series. Task: write phase {phase} (episodes {start} to {end}).
Audience: {mode}.

{consistency}
{style}
{continuity}

Hard requirements:
- Output exactly {count} episodes, numbered {start} through {end} in the units array.
- 600-800 words per episode, plain script text, no Markdown.
- Layout reference: [{layout}]""",
}

BATCH_USER = {
    "zh": """[大纲路线]：
{outline}
[之前批次的改编记录]：
{history}
[当前阶段任务]：第{start}集至第{end}集
{description} (预期爽点: {climax})
[前序剧集结尾（必须衔接）]：
{context}
[原著素材]：
{source}""",
    "en": """[Outline]:
{outline}
[Adaptation history]:
{history}
[Current phase]: episodes {start} to {end}
{description} (target climax: {climax})
[Previous ending (must continue from here)]:
{context}
[Source material]:
{source}""",
}

EMPTY = {
    "zh": {"history": "暂无记录", "context": "无", "layout": "标准格式"},
    "en": {"history": "none yet", "context": "none", "layout": "standard format"},
}


def outline_instructions(style: StyleParameters, language: str) -> str:
    return OUTLINE_SYSTEM[language].format(mode=MODE_LABELS[language][style.mode])


def outline_user_content(source_document: str, language: str) -> str:
    label = "素材" if language == "zh" else "Source material"
    return f"{label}:\n{source_document}"


def batch_instructions(request: BatchRequest, language: str) -> str:
    style = request.style
    continuity = (
        OPENING_INSTRUCTIONS[language]
        if request.is_first_batch
        else CONTINUATION_INSTRUCTIONS[language]
    )
    return BATCH_SYSTEM[language].format(
        phase=request.phase.phase_index,
        start=request.start_unit_number,
        end=request.end_unit_number,
        count=request.phase.episode_count,
        mode=MODE_LABELS[language][style.mode],
        consistency=CONSISTENCY_INSTRUCTIONS[language],
        style=STYLE_INSTRUCTIONS[language][style.script_style],
        continuity=continuity,
        layout=style.layout_reference or EMPTY[language]["layout"],
    )


def batch_user_content(request: BatchRequest, language: str, source_excerpt: str) -> str:
    return BATCH_USER[language].format(
        start=request.start_unit_number,
        end=request.end_unit_number,
        outline=request.outline_summary,
        history=request.adaptation_history or EMPTY[language]["history"],
        description=request.phase.description,
        climax=request.phase.climax,
        context=request.prior_context or EMPTY[language]["context"],
        source=source_excerpt,
    )
