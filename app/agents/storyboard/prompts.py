KEYFRAME_COUNT = 4

# Fixed beat labels: start, development, climax, ending.
BEAT_LABELS: tuple[str, ...] = ("开始", "发展", "高潮", "结尾")

# Prompt-independent keyframes used when the model response cannot be parsed.
DEFAULT_KEYFRAMES: tuple[str, ...] = (
    "场景1 - 开始: 视频起始状态",
    "场景2 - 发展: 动作或情绪推进",
    "场景3 - 高潮: 变化或转折点",
    "场景4 - 结尾: 视频结束状态",
)

# Field labels the model is asked to emit under every keyframe header.
DESCRIPTION_LABEL = "画面描述"
COMPOSITION_LABEL = "构图参数"
CONTINUITY_LABEL = "连续性说明"

ANALYSIS_PROMPT_TEMPLATE = """
你是一位专业的视频预可视化艺术家，专精于为AI视频生成创作首尾帧驱动的连贯关键帧序列。

请基于提供的图像和基础提示词，生成4个视觉连续的关键帧描述，要求：

严格视觉连续性：
- 所有4个关键帧必须基于同一源图像元素
- 保持相同：人物/物体、服装/外观、环境背景、光照条件、色彩风格
- 仅允许变化：姿势、表情、镜头构图、相机角度、部分遮挡

首尾帧视频生成优化：
- 关键帧#1与关键帧#4应形成自然的动作或状态循环
- 关键帧之间的变化需平滑、线性可预测，便于AI插值

四帧叙事逻辑：
- 关键帧1：初始状态（视频起点）
- 关键帧2：动作发展/情绪推进
- 关键帧3：变化高潮/转折点
- 关键帧4：结束状态（视频终点，可与起点呼应）

基础提示词: {base_prompt}

请按以下格式输出每个关键帧的详细描述：

【KF#/4 | 镜头类型 | 视频时间点】
{description_label}：详细的视觉内容，包括所有可见元素的状态
{composition_label}：视角、景别、焦点主体
{continuity_label}：与前后帧的视觉连接点
"""


def build_analysis_prompt(base_prompt: str) -> str:
    """Instruction sent, together with the reference image, to the vision model.

    Only the image-guided run uses it; text-only runs never call the model.
    """
    return ANALYSIS_PROMPT_TEMPLATE.format(
        base_prompt=base_prompt,
        description_label=DESCRIPTION_LABEL,
        composition_label=COMPOSITION_LABEL,
        continuity_label=CONTINUITY_LABEL,
    )


def generate_storyboard_prompts(base_prompt: str, style: str = "") -> list[str]:
    style_text = f" ({style})" if style else ""
    return [
        f"场景{i} - {label}: {base_prompt}{style_text}"
        for i, label in enumerate(BEAT_LABELS, start=1)
    ]
